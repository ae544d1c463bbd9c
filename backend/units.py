VOLUME_UNITS = ('L', 'hL')


def to_liters(value, unit):
    """Convert a volume in L or hL to liters."""
    return value * 100 if unit == 'hL' else value
