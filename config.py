import os
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import model_validator, field_validator
from typing import Optional

BASE_DIR = os.path.abspath(os.path.dirname(__file__))
DEFAULT_DB_URI = f'sqlite:///{os.path.join(BASE_DIR, "vaultshare.db")}'


class Config(BaseSettings):
    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',  # Ignore extra fields from .env
    )

    # Security configuration
    SECRET_KEY: str

    # Database
    DATABASE_URL: str = DEFAULT_DB_URI
    SQLALCHEMY_DATABASE_URI: Optional[str] = None
    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False
    SQLALCHEMY_ENGINE_OPTIONS: dict = {}

    @model_validator(mode='after')
    def set_database_config(self) -> 'Config':
        """Set SQLALCHEMY_DATABASE_URI from DATABASE_URL and configure engine options"""
        self.SQLALCHEMY_DATABASE_URI = self.DATABASE_URL

        if 'mysql' in self.DATABASE_URL or 'mariadb' in self.DATABASE_URL:
            self.SQLALCHEMY_ENGINE_OPTIONS = {
                'pool_size': 10,
                'pool_recycle': 3600,
                'pool_pre_ping': True,
                'max_overflow': 20,
                'connect_args': {
                    'charset': 'utf8mb4',
                }
            }

        return self

    # Email settings (invitation emails)
    MAIL_SERVER: Optional[str] = None
    MAIL_PORT: Optional[int] = None
    MAIL_USERNAME: Optional[str] = None
    MAIL_PASSWORD: Optional[str] = None
    MAIL_USE_TLS: bool = False
    MAIL_USE_SSL: bool = False
    MAIL_DEFAULT_SENDER: Optional[str] = None

    # Identity is established by the identity provider sitting in front of
    # the service. It forwards the authenticated subject in these headers.
    IDENTITY_HEADER: str = 'X-User-Id'
    IDENTITY_EMAIL_HEADER: str = 'X-User-Email'

    # Invitations
    INVITATION_TTL_DAYS: int = 7
    # Frontend URLs handed out with tokens, e.g. 'https://vault.example.com/invite/{token}'.
    # When unset the API's own token endpoints are used.
    INVITATION_ACCEPT_URL_TEMPLATE: Optional[str] = None
    SHARE_LINK_URL_TEMPLATE: Optional[str] = None

    # Opaque tokens (bytes of entropy before base64url encoding)
    TOKEN_BYTES: int = 32

    @field_validator('TOKEN_BYTES')
    def _min_token_bytes(cls, v):
        if v < 16:
            raise ValueError('TOKEN_BYTES must be at least 16')
        return v

    # Share-link passcodes. The pepper defaults to SECRET_KEY when unset;
    # rotating it invalidates every stored passcode digest.
    SHARE_PASSCODE_PEPPER: Optional[str] = None
    PASSCODE_HASH_TIME_COST: int = 2
    PASSCODE_HASH_MEMORY_COST: int = 19456  # KiB
    PASSCODE_HASH_PARALLELISM: int = 1

    # Audit retention (days)
    AUDIT_RETENTION_DAYS: int = 30
    # Directory for JSON-lines audit files; file logging is off when unset
    AUDIT_LOG_DIR: Optional[str] = None

    # Internationalization
    LANGUAGES: list = ['en']
    BABEL_DEFAULT_LOCALE: str = 'en'
    BABEL_DEFAULT_TIMEZONE: str = 'UTC'
    BABEL_TRANSLATION_DIRECTORIES: str = os.path.join(BASE_DIR, 'translations')

    # Application environment: development | staging | production
    APP_ENV: str = os.getenv('FLASK_ENV', 'development')

    # Rate limiting of the public token endpoints.
    # Development: in-memory store. Production: set RATELIMIT_STORAGE_URL
    # (e.g. redis://) so limits are shared between workers.
    RATELIMIT_STORAGE_URL: Optional[str] = None
    SHARE_VERIFY_RATE_LIMIT: str = '30 per minute'
    INVITATION_LOOKUP_RATE_LIMIT: str = '30 per minute'

    # Background jobs (audit retention)
    SCHEDULER_ENABLED: bool = False
