"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (MODELSYNC__SECTION__KEY)
3. Project YAML (<project>/.modelsync/config.yaml)
4. Global YAML (~/.config/modelsync/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    MODELSYNC__<SECTION>__<KEY>=<VALUE>

Examples:
    MODELSYNC__LOGGING__LEVEL=DEBUG
    MODELSYNC__CONCURRENCY__MAX_WORKERS=4
    MODELSYNC__GENERATION__SCAN_TABLE_SUFFIXES=true
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        MODELSYNC__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every class and property decision.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class LayoutConfig(BaseModel):
    """Where generated artifacts live inside the target project.

    Env vars:
        MODELSYNC__LAYOUT__MODELS_DIR: Model class directory (default: Models)
        MODELSYNC__LAYOUT__DAO_DIR: Wrapper class directory (default: Dao)
    """

    models_dir: str = Field(default="Models", description="Directory holding model classes.")
    dao_dir: str = Field(default="Dao", description="Directory holding DAO wrapper classes.")
    schema_dir: str = Field(default="Schema", description="Directory for per-table DDL dumps.")
    registry_file: str = Field(default="Db.cs", description="Aggregate DbContext registry file.")
    registry_class: str = Field(default="Db", description="Registry class name.")
    dao_suffix: str = Field(default="Dao", description="Suffix appended to wrapper class names.")
    dao_base_class: str = Field(default="DaoBase", description="Generic wrapper base class.")
    identity_sentinel: str = Field(
        default="IEntity.cs",
        description="File under models_dir whose presence enables the uniform identity convention.",
    )
    identity_interface: str = Field(
        default="IEntity",
        description="Generic identity marker interface added to new models under the convention.",
    )
    protected_files: list[str] = Field(
        default_factory=lambda: ["DaoBase.cs", "IEntity.cs"],
        description="Hand-maintained base files that are never swept.",
    )

    @field_validator("models_dir", "dao_dir", "schema_dir")
    @classmethod
    def validate_relative(cls, v: str) -> str:
        if Path(v).is_absolute():
            raise ValueError(f"Layout directories must be relative to the project: {v}")
        return v


class GenerationConfig(BaseModel):
    """Code generation knobs.

    Env vars:
        MODELSYNC__GENERATION__SCAN_TABLE_SUFFIXES: Enable the expensive singular-table scan
        MODELSYNC__GENERATION__DUMP_SCHEMA: Write Schema/<table>.sql files
    """

    column_defaults: dict[str, str] = Field(
        default_factory=lambda: {
            "datecreated": "DateTime.Now",
            "createdat": "DateTime.Now",
            "created": "DateTime.Now",
        },
        description="Lower-cased column name -> C# expression assigned in the constructor "
        "instead of taking a parameter.",
    )
    annotations_namespace: str = Field(
        default="ModelSync.Annotations",
        description="Namespace imported by models that carry [ReferenceKey] annotations.",
    )
    scan_table_suffixes: bool = Field(
        default=False,
        description="Also match tables named in singular while the class is plural. "
        "RISK: O(tables x suffixes) per unresolved class.",
    )
    dump_schema: bool = Field(default=True, description="Write per-table DDL documentation.")


class ConcurrencyConfig(BaseModel):
    """Worker pool configuration.

    Env vars:
        MODELSYNC__CONCURRENCY__MAX_WORKERS: Parallel workers per phase
    """

    max_workers: int = Field(
        default=8,
        description="Parallel units of work per phase. 1 runs every phase serially.",
    )

    @field_validator("max_workers")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_workers must be >= 1, got {v}")
        return v


class ModelSyncConfig(BaseModel):
    """Root config."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    layout: LayoutConfig = Field(default_factory=LayoutConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    concurrency: ConcurrencyConfig = Field(default_factory=ConcurrencyConfig)
