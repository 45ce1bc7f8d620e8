from __future__ import annotations
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal
import structlog
import yaml
from pydantic import BaseModel, Field, ValidationError

log = structlog.get_logger()

REQUIRED_SECTIONS = ("env", "server", "storage", "auth", "logging")
REQUIRED_KEYS = ("server.host", "server.port", "storage.database.url", "auth.jwt.signing_key")

DEFAULT_MIME_TYPES = [
    # images
    "image/png", "image/jpg", "image/jpeg", "image/svg+xml", "image/webp", "image/tiff", "image/bmp", "image/gif",
    # videos
    "video/mp4", "video/avi", "video/quicktime", "video/x-ms-wmv", "video/x-flv", "video/webm", "video/x-matroska",
    # documents
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
]


class ConfigError(Exception):
    pass


class EnvConfig(BaseModel):
    name: str = "dev"
    app_name: str = "skillzcollab-api"
    app_display_name: str = "SkillzCollab"
    app_version: str = "0.1.0"
    git_sha: str = "dev"


class CorsConfig(BaseModel):
    origins: list[str] = Field(default_factory=lambda: ["*"])


class FileUploadConfig(BaseModel):
    max_files: int = 10
    max_file_size: int = 100 * 1024 * 1024
    max_base64_image_size: int = 5 * 1024 * 1024
    allowed_mime_types: list[str] = Field(default_factory=lambda: list(DEFAULT_MIME_TYPES))


class ServerConfig(BaseModel):
    host: str
    port: int
    cors: CorsConfig = Field(default_factory=CorsConfig)
    file_upload: FileUploadConfig = Field(default_factory=FileUploadConfig)


class DatabaseConfig(BaseModel):
    url: str
    echo: bool = False


class ObjectStorageConfig(BaseModel):
    endpoint: str = "http://minio:9000"
    region: str | None = None
    access_key_id: str = "minioadmin"
    secret_access_key: str = "minioadmin"
    bucket: str = "skillzcollab-uploads-dev"
    public_base_url: str | None = None
    presign_expiry_seconds: int = 300


class StorageConfig(BaseModel):
    database: DatabaseConfig
    object_storage: ObjectStorageConfig = Field(default_factory=ObjectStorageConfig)


class JwtConfig(BaseModel):
    signing_key: str
    verification_key: str | None = None  # falls back to signing_key (HMAC)
    issuer: str = "skillzcollab"
    audience: str = "skillzcollab-api"
    algorithm: str = "HS256"
    access_token_validity: str | int = "24h"
    refresh_token_validity: str | int = "7d"


class PasswordConfig(BaseModel):
    bcrypt_rounds: int = 12


class BasicAuthConfig(BaseModel):
    enabled: bool = False
    realm: str = "SkillzCollab"
    api_keys: dict[str, str] = Field(default_factory=dict)  # key -> username


class GoogleOAuthConfig(BaseModel):
    client_id: str = ""
    secret: str = ""
    redirect_url: str = ""
    frontend_redirect_url: str | None = None
    auth_url: str = "https://accounts.google.com/o/oauth2/v2/auth"
    token_url: str = "https://oauth2.googleapis.com/token"
    userinfo_url: str = "https://www.googleapis.com/oauth2/v2/userinfo"
    scopes: list[str] = Field(default_factory=lambda: ["openid", "email", "profile"])


class OAuthConfig(BaseModel):
    google: GoogleOAuthConfig = Field(default_factory=GoogleOAuthConfig)


class RoleConfig(BaseModel):
    description: str | None = None
    permissions: list[str] = Field(default_factory=list)
    inherits: list[str] = Field(default_factory=list)


class RbacConfig(BaseModel):
    roles: dict[str, RoleConfig] = Field(default_factory=dict)
    action_aliases: dict[str, list[str]] = Field(default_factory=dict)


class AuthConfig(BaseModel):
    jwt: JwtConfig
    password: PasswordConfig = Field(default_factory=PasswordConfig)
    basic_auth: BasicAuthConfig = Field(default_factory=BasicAuthConfig)
    oauth: OAuthConfig = Field(default_factory=OAuthConfig)
    rbac: RbacConfig = Field(default_factory=RbacConfig)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: Literal["json", "console"] = "json"


class NotificationsConfig(BaseModel):
    enabled: bool = False
    redis_url: str = "redis://redis:6379/0"
    queue: str = "default"
    smtp_host: str = "localhost"
    smtp_port: int = 25
    from_email: str = "no-reply@skillzcollab.local"
    frontend_url: str = "http://localhost:3000"


class AppConfig(BaseModel):
    env: EnvConfig
    server: ServerConfig
    storage: StorageConfig
    auth: AuthConfig
    logging: LoggingConfig
    notifications: NotificationsConfig = Field(default_factory=NotificationsConfig)


def config_path() -> Path:
    override = os.getenv("SKILLZ_CONFIG")
    if override:
        return Path(override)
    return Path.cwd() / "config" / "config.yaml"


def _lookup(data: Any, dotted: str) -> Any:
    node = data
    for part in dotted.split("."):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


@lru_cache(maxsize=1)
def load_config() -> AppConfig:
    """
    Read, validate and memoize the YAML configuration.
    Raises ConfigError for a missing file, malformed YAML, a missing
    required section/key, or values that fail validation.
    """
    path = config_path()
    if not path.is_file():
        raise ConfigError(f"Configuration file not found at: {path}")
    with path.open(encoding="utf-8") as fh:
        try:
            raw = yaml.safe_load(fh) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError("Configuration root must be a mapping")

    for section in REQUIRED_SECTIONS:
        if section not in raw:
            raise ConfigError(f"Missing required configuration section: {section}")
    for dotted in REQUIRED_KEYS:
        if _lookup(raw, dotted) in (None, ""):
            raise ConfigError(f"Missing required configuration key: {dotted}")

    try:
        cfg = AppConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e
    log.info("config_loaded", path=str(path), env=cfg.env.name)
    return cfg


def reload_config() -> AppConfig:
    load_config.cache_clear()
    return load_config()


def is_config_loaded() -> bool:
    return load_config.cache_info().currsize > 0


def get_config_value(dotted: str) -> Any:
    """get_config_value("auth.jwt.issuer") -> "skillzcollab"; None when any segment is missing."""
    return _lookup(load_config().model_dump(), dotted)


def get_environment_config() -> EnvConfig:
    return load_config().env

def get_server_config() -> ServerConfig:
    return load_config().server

def get_cors_config() -> CorsConfig:
    return load_config().server.cors

def get_file_upload_config() -> FileUploadConfig:
    return load_config().server.file_upload

def get_database_config() -> DatabaseConfig:
    return load_config().storage.database

def get_object_storage_config() -> ObjectStorageConfig:
    return load_config().storage.object_storage

def get_auth_config() -> AuthConfig:
    return load_config().auth

def get_jwt_config() -> JwtConfig:
    return load_config().auth.jwt

def get_basic_auth_config() -> BasicAuthConfig:
    return load_config().auth.basic_auth

def get_oauth_config() -> OAuthConfig:
    return load_config().auth.oauth

def get_rbac_config() -> RbacConfig:
    return load_config().auth.rbac

def get_logging_config() -> LoggingConfig:
    return load_config().logging

def get_notifications_config() -> NotificationsConfig:
    return load_config().notifications


def _flatten(prefix: str, node: Any, out: dict[str, Any]) -> None:
    if isinstance(node, dict):
        for k, v in node.items():
            _flatten(f"{prefix}_{k}" if prefix else str(k), v, out)
    else:
        out[prefix.upper()] = node


def export_as_env_vars() -> dict[str, Any]:
    out: dict[str, Any] = {}
    _flatten("", load_config().model_dump(), out)
    return out
