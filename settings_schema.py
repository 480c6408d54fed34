from pydantic import BaseModel, Field, ValidationError, field_validator


class SettingsSchema(BaseModel):
    chart_window: int = Field(10, ge=1, le=100)
    seed_on_first_run: bool = True
    backup_on_import: bool = True
    export_dir: str = "."
    log_level: str = "INFO"
    storage_key: str = "hal-lab-workout-store"

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        if value.upper() not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return value.upper()


DEFAULT_SETTINGS = SettingsSchema().model_dump()


def validate_settings(data: dict) -> None:
    try:
        SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))
