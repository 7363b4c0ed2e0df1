import os


def _flag(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).lower() == 'true'


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-prod')

    # PlayFab matchmaking
    PLAYFAB_TITLE_ID = os.getenv('PLAYFAB_TITLE_ID', '')
    PLAYFAB_SECRET_KEY = os.getenv('PLAYFAB_SECRET_KEY', '')
    PLAYFAB_URL = os.getenv('PLAYFAB_URL', '')  # defaults to https://{title}.playfabapi.com
    PLAYFAB_TIMEOUT = float(os.getenv('PLAYFAB_TIMEOUT', '10'))

    # Gameye hosting
    GAMEYE_URL = os.getenv('GAMEYE_URL', 'https://api.gameye.io/')
    GAMEYE_TOKEN = os.getenv('GAMEYE_TOKEN', '')
    GAMEYE_GAME_KEY = os.getenv('GAMEYE_GAME_KEY', '')
    GAMEYE_TEMPLATE_KEY = os.getenv('GAMEYE_TEMPLATE_KEY', '')
    GAMEYE_QUERY_TIMEOUT = float(os.getenv('GAMEYE_QUERY_TIMEOUT', '10'))

    # Redis (outcome reporting)
    REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379')
    USE_REDIS = _flag('USE_REDIS', 'true')

    # Ticket polling: PlayFab allows at most 10 ticket checks per minute
    TICKET_POLL_INTERVAL = float(os.getenv('TICKET_POLL_INTERVAL', '6'))
    TICKET_POLL_MAX_ATTEMPTS = int(os.getenv('TICKET_POLL_MAX_ATTEMPTS', '50'))

    # Provisioning: a cold server start can take up to 50 seconds
    START_MATCH_TIMEOUT = float(os.getenv('START_MATCH_TIMEOUT', '50'))
    MATCH_QUERY_INTERVAL = float(os.getenv('MATCH_QUERY_INTERVAL', '3'))
    MATCH_QUERY_MAX_ATTEMPTS = int(os.getenv('MATCH_QUERY_MAX_ATTEMPTS', '10'))
    RECOVER_UNPARSEABLE_ALLOCATION = _flag('RECOVER_UNPARSEABLE_ALLOCATION')

    # Matchmaking
    MATCHMAKING_TYPE = int(os.getenv('MATCHMAKING_TYPE', '4'))
    GIVE_UP_AFTER_SECONDS = int(os.getenv('GIVE_UP_AFTER_SECONDS', '300'))

    # Flow supervisor
    MAX_CONCURRENT_FLOWS = int(os.getenv('MAX_CONCURRENT_FLOWS', '32'))
    MAX_TICKET_WATCHERS = int(os.getenv('MAX_TICKET_WATCHERS', '32'))
    # A match stays claimed this long after its outcome is reported
    MATCH_CLAIM_TTL = float(os.getenv('MATCH_CLAIM_TTL', '3600'))
    SHUTDOWN_TIMEOUT = float(os.getenv('SHUTDOWN_TIMEOUT', '60'))

    # Logging
    LOG_FILE = os.getenv('LOG_FILE', './output.log')
    PRINT_CMD_LOG = _flag('PRINT_CMD_LOG', 'true')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')


class DevelopmentConfig(Config):
    DEBUG = True
    USE_REDIS = False
    LOG_LEVEL = 'DEBUG'


class ProductionConfig(Config):
    DEBUG = False
    PRINT_CMD_LOG = False


class TestingConfig(Config):
    TESTING = True
    DEBUG = False
    USE_REDIS = False
    LOG_FILE = ''
    PRINT_CMD_LOG = False
    PLAYFAB_TITLE_ID = 'TEST'
    PLAYFAB_SECRET_KEY = 'test-secret'
    GAMEYE_URL = 'https://gameye.test/'
    GAMEYE_TOKEN = 'test-token'
    GAMEYE_GAME_KEY = 'test-game'
    GAMEYE_TEMPLATE_KEY = 'test-template'
    TICKET_POLL_INTERVAL = 0
    MATCH_QUERY_INTERVAL = 0
    MATCH_QUERY_MAX_ATTEMPTS = 3
    SHUTDOWN_TIMEOUT = 5


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def load_config(config_name: str = None) -> dict:
    """Flatten a config class into a plain dict of its upper-case settings."""
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')
    config_class = config.get(config_name, config['default'])
    return {key: getattr(config_class, key) for key in dir(config_class) if key.isupper()}
