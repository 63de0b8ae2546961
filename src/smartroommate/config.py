from dataclasses import dataclass, field
from environs import Env

@dataclass
class JWTConfig:
    secret_key: str
    access_token_expire_minutes: int = 480 # 8 hours

@dataclass
class DBConfig:
    """ PostgreSQL """
    host: str | None = None
    port: int | None = None
    name: str | None = None
    user: str | None = None
    password: str | None = None

    """ SQLite """
    path: str | None = None

    @property
    def is_postgres(self) -> bool:
        return bool(self.host)

@dataclass
class RedisConfig:
    host: str | None = 'localhost'
    port: int | None = 6379

@dataclass
class SMTPConfig:
    host: str | None = None
    port: int = 587
    user: str | None = None
    password: str | None = None
    secure: bool = False
    from_address: str = 'no-reply@smartroommate.local'

    @property
    def enabled(self) -> bool:
        return bool(self.host and self.user and self.password)

@dataclass
class StorageConfig:
    upload_dir: str = 'uploads'
    public_base_url: str = 'http://localhost:8000'
    max_file_size: int = 5 * 1024 * 1024
    max_files: int = 6

@dataclass
class AppConfig:
    base_url: str = 'http://localhost:3000'
    log_level: str = 'INFO'
    notify_timeout: float = 5.0 # seconds

@dataclass
class Config:
    """ Config """
    jwt: JWTConfig
    db: DBConfig
    redis: RedisConfig
    smtp: SMTPConfig = field(default_factory=SMTPConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    app: AppConfig = field(default_factory=AppConfig)

def load_config(path: str | None = None) -> Config:
    env = Env()
    env.read_env(path)

    smtp_user = env('SMTP_USER', None)

    return Config(
        jwt=JWTConfig(
            secret_key=env('SECRET_KEY'),
            access_token_expire_minutes=env.int('ACCESS_TOKEN_EXPIRE_MINUTES', 480),
        ),
        db=DBConfig(
            host=env('DB_HOST', None),
            port=env.int('DB_PORT', None),
            name=env('DB_NAME', None),
            user=env('DB_USER', None),
            password=env('DB_PASSWORD', None),
            path=env('DB_PATH', 'data/smartroommate.db')
        ),
        redis=RedisConfig(
            host=env('REDIS_HOST', 'localhost'),
            port=env.int('REDIS_PORT', 6379)
        ),
        smtp=SMTPConfig(
            host=env('SMTP_HOST', None),
            port=env.int('SMTP_PORT', 587),
            user=smtp_user,
            password=env('SMTP_PASS', None),
            secure=env.bool('SMTP_SECURE', False),
            from_address=env('SMTP_FROM', None) or smtp_user or 'no-reply@smartroommate.local'
        ),
        storage=StorageConfig(
            upload_dir=env('UPLOAD_DIR', 'uploads'),
            public_base_url=env('PUBLIC_BASE_URL', 'http://localhost:8000'),
            max_file_size=env.int('UPLOAD_MAX_FILE_SIZE', 5 * 1024 * 1024),
            max_files=env.int('UPLOAD_MAX_FILES', 6)
        ),
        app=AppConfig(
            base_url=env('APP_BASE_URL', 'http://localhost:3000'),
            log_level=env('LOG_LEVEL', 'INFO'),
            notify_timeout=env.float('NOTIFY_TIMEOUT', 5.0)
        )
    )
