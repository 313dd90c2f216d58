from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "CertiGest API"
    app_env: str = "development"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    cors_origins: str = "http://localhost:3000"
    cors_allow_credentials: bool = True
    log_level: str = "INFO"
    request_id_header: str = "X-Request-ID"
    auth_enabled: bool = False
    # OIDC issuer base URL; JWKS is read from `<issuer>/.well-known/jwks.json`.
    auth_issuer: str = ""
    auth_audience: str = ""

    database_url: str = "sqlite:///./certigest.db"
    export_root: str = "data/exports"
    # 1 runs payload decoding inline; larger values decode on a thread pool.
    assembly_workers: int = 4
    # A4 in PDF points.
    dossier_page_width: float = 595.28
    dossier_page_height: float = 841.89
    dossier_image_margin: float = 50.0
    dossier_label_font_size: float = 12.0
    dossier_label_offset: float = 40.0
    max_upload_file_bytes: int = 10 * 1024 * 1024

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


settings = Settings()
