from enum import Enum
from pathlib import Path

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict, JsonConfigSettingsSource

config_path = Path(__file__).parent / 'config.json'


class CollisionPolicy(str, Enum):
    OVERWRITE = 'overwrite'
    REJECT = 'reject'
    RENAME = 'rename'


class StorageConfig(BaseModel):
    base_dir: str
    collision_policy: CollisionPolicy = CollisionPolicy.OVERWRITE


class Config(BaseSettings):
    """Server settings; config.json holds the defaults, PHOTO_DROP_* env vars override them.

    Nested fields use a double underscore, e.g. PHOTO_DROP_STORAGE__BASE_DIR.
    PHOTO_DROP_BASE_DIR is accepted as a shorthand for the storage root.
    """
    model_config = SettingsConfigDict(env_prefix='PHOTO_DROP_',
                                      env_nested_delimiter='__',
                                      json_file=config_path,
                                      extra='ignore')

    host: str
    port: int
    log_level: str = 'INFO'
    base_dir: str | None = None
    storage: StorageConfig

    @classmethod
    def settings_customise_sources(cls, settings_cls, init_settings, env_settings,
                                   dotenv_settings, file_secret_settings):
        return init_settings, env_settings, JsonConfigSettingsSource(settings_cls)

    @property
    def storage_root(self) -> Path:
        return Path(self.base_dir or self.storage.base_dir)


config = Config()
