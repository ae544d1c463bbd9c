import os


def _optional_int(name):
    value = os.environ.get(name)
    return int(value) if value not in (None, '') else None


class Config:
    PORT = int(os.environ.get('PORT', 5000))
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Number of target-mode combinations returned
    BLEND_TOP_K = int(os.environ.get('BLEND_TOP_K', 5))
    # Seeds the random sampler; unset means a fresh seed per process
    BLEND_RANDOM_SEED = _optional_int('BLEND_RANDOM_SEED')
    TESTING = False


class DevelopmentConfig(Config):
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')


class TestingConfig(Config):
    TESTING = True
    BLEND_RANDOM_SEED = 1234


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': Config,
    'default': Config,
}
