"""
Initializes the Dynaconf settings object for the snapshot_sync component.
This module is the single source of truth for all configuration.

Every key has a default, so the component starts without a settings file;
values can be overridden from the environment, e.g.
SNAPSHOT_SYNC_STORE__PROJECT_ID=MyGame.1a2b3c4d.
"""

from pathlib import Path
from dynaconf import Dynaconf, Validator

PROJECT_ROOT = Path(__file__).parent.parent

settings = Dynaconf(
    root_path=PROJECT_ROOT,
    settings_files=["config/settings.toml"],
    secrets=["config/.secrets.toml"],
    envvar_prefix="SNAPSHOT_SYNC",
    environments=False,
    validators=[
        Validator("logging.level", default="INFO"),
        Validator("store.base_url", default="http://localhost:8558"),
        Validator("store.timeout", default=30),
        Validator("store.retry_attempts", default=3, gte=1),
        Validator("store.retry_min_wait", default=1, gte=0),
        Validator("store.retry_max_wait", default=10, gte=0),
        Validator("store.project_id", default=""),
        Validator("project.root_dir", default="."),
        Validator("project.engine_dir", default="."),
        Validator("project.project_dir", default="."),
        Validator("project.project_file", default=""),
        Validator("sync.poll_interval", default=1.0),
        Validator("sync.marker_name", default="ue.projectstore"),
        Validator(
            "sync.message_policy",
            default="append",
            is_in=["append", "new", "ignore"],
        ),
        Validator("sync.descriptor_file", default=""),
    ],
)
