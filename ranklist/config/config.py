# ranklist/config/config.py
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_PROJECT_ROOT = Path(__file__).resolve().parents[2]
_DEFAULT_DATA_DIR = _PROJECT_ROOT / "data"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_PROJECT_ROOT / ".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        populate_by_name=True,
        extra="ignore",
    )

    # окружение
    env: str = Field("dev", alias="ENV")
    data_dir: Path = Field(_DEFAULT_DATA_DIR, alias="DATA_DIR")

    # БД
    db_url: str | None = Field(None, alias="DATABASE_URL")
    db_filename: str = Field("ranklist.db", alias="DB_FILENAME")
    db_echo: bool = Field(False, alias="DB_ECHO")

    # ───────────────── Разбор списков ───────────────────
    # "extended" — раскладка по уровню образования (вуз / СПО),
    # "simple" — одна фиксированная раскладка старых списков.
    parser_mode: Literal["extended", "simple"] = Field("extended", alias="PARSER_MODE")
    # Куда выгрузить абитуриентов после импорта (CSV); пусто — не выгружать.
    export_csv: Path | None = Field(None, alias="EXPORT_CSV")

    @model_validator(mode="before")
    def _preprocess(cls, values: dict[str, Any]) -> dict[str, Any]:
        key = "DATA_DIR" if "DATA_DIR" in values else "data_dir"
        raw = values.get(key, _DEFAULT_DATA_DIR)
        values[key] = Path(raw).expanduser().resolve()
        return values

    @property
    def database_url(self) -> str:
        return self.db_url or f"sqlite:///{self.data_dir / self.db_filename}"

    @property
    def export_csv_path(self) -> Path | None:
        """Относительный путь выгрузки считается от DATA_DIR."""
        if self.export_csv is None:
            return None
        if self.export_csv.is_absolute():
            return self.export_csv
        return self.data_dir / self.export_csv


settings = Settings()
