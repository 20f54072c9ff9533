"""FamilyHub Server Configuration."""

from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Server
    server_name: str = "FamilyHub Server"
    host: str = "0.0.0.0"
    port: int = 8080
    debug: bool = False
    log_level: str = "INFO"

    # Paths
    data_dir: Path = Path.home() / "familyhub" / "data"

    # Document store
    store_backend: str = "json"  # 'json' | 'sqlite' | 'memory'
    store_path: Path | None = None  # defaults to data_dir / store.json
    db_path: Path | None = None  # defaults to data_dir / familyhub.db

    # Invite / share codes (I, O, 0, 1 excluded)
    code_length: int = 6
    code_alphabet: str = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
    code_max_attempts: int = 2000

    # Client synchronizer
    sync_interval_seconds: float = 6.0
    request_timeout_seconds: float = 10.0

    # Assistant gateway
    assistant_api_key: str = ""
    assistant_model: str = "models/gemini-2.5-flash"
    assistant_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    assistant_history_limit: int = 10
    assistant_system_prompt: str = (
        "You are FamilyHub Assistant, a friendly planning helper for families. "
        "Provide practical planning, nutrition and budget suggestions. "
        "Keep responses concise (under 6 sentences) unless more detail is explicitly requested."
    )

    model_config = {"env_prefix": "FAMILYHUB_"}

    @property
    def resolved_store_path(self) -> Path:
        return self.store_path or self.data_dir / "store.json"

    @property
    def resolved_db_path(self) -> Path:
        return self.db_path or self.data_dir / "familyhub.db"

    def ensure_dirs(self) -> None:
        """Create all required directories."""
        self.data_dir.mkdir(parents=True, exist_ok=True)


settings = Settings()
settings.ensure_dirs()
