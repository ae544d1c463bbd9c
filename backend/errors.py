class BlendError(Exception):
    """Base class for errors raised by the blend engine."""


class ValidationError(BlendError):
    """Caller input that cannot be calculated with."""

    def __init__(self, message, field=None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self):
        payload = {'error': self.message}
        if self.field:
            payload['field'] = self.field
        return payload


class TankNotFound(ValidationError):
    def __init__(self, tank_id):
        super().__init__(f"Tank '{tank_id}' not found.", field='tank_id')
        self.tank_id = tank_id
