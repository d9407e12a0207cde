from pathlib import Path
from typing import Dict, Any, Optional
import yaml
from loguru import logger
from pydantic import Field
from pydantic_settings import BaseSettings
from dotenv import load_dotenv


# Load environment variables
load_dotenv()


class SolverConfig(BaseSettings):
    team_limit: int = Field(default=3, alias="TEAM_LIMIT")  # Max players from one club
    top_k: int = Field(default=3, alias="TOP_SQUADS")  # Ranked squads to keep

    # Unset means the search runs to completion
    max_nodes: Optional[int] = Field(default=None, alias="SOLVER_MAX_NODES")

    # Budget split between starting XI and bench
    total_budget: float = Field(default=100.0, alias="TOTAL_BUDGET")
    bench_value: float = Field(default=17.0, alias="BENCH_VALUE")

    model_config = {"extra": "ignore", "populate_by_name": True}


class FPLConfig(BaseSettings):
    base_url: str = Field(default="https://fantasy.premierleague.com/api", alias="FPL_BASE_URL")
    cache_duration: int = Field(default=300, alias="FPL_CACHE_DURATION")  # seconds

    model_config = {"extra": "ignore"}


class LoggingConfig(BaseSettings):
    level: str = Field(default="INFO", alias="LOG_LEVEL")
    format: str = Field(
        default="{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{function}:{line} - {message}",
        alias="LOG_FORMAT"
    )
    rotation: str = Field(default="1 day", alias="LOG_ROTATION")
    retention: str = Field(default="7 days", alias="LOG_RETENTION")

    file_enabled: bool = Field(default=False, alias="LOG_TO_FILE")
    console_enabled: bool = Field(default=True, alias="LOG_TO_CONSOLE")

    model_config = {"extra": "ignore"}

    @property
    def file_path(self) -> str:
        return "logs/xi_optimizer_{time:YYYY-MM-DD}.log"


class AppConfig(BaseSettings):
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")

    # Sub-configurations
    solver: SolverConfig = Field(default_factory=SolverConfig)
    fpl: FPLConfig = Field(default_factory=FPLConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore"
    }


class ConfigManager:
    """Manages application configuration"""

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path or Path("config/config.yaml")
        self.app_config = AppConfig()

        # Load additional config from YAML if exists
        if self.config_path.exists():
            self.load_yaml_config()

    def load_yaml_config(self):
        """Load configuration from YAML file"""
        try:
            with open(self.config_path, 'r') as f:
                yaml_config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Could not load YAML config {self.config_path}: {e}")
            return

        if yaml_config:
            self._update_config(yaml_config)

    def _update_config(self, yaml_config: Dict[str, Any]):
        """Update configuration with values from YAML"""
        for key, value in yaml_config.items():
            if hasattr(self.app_config, key):
                if isinstance(value, dict):
                    # For nested configs
                    config_obj = getattr(self.app_config, key)
                    for sub_key, sub_value in value.items():
                        if hasattr(config_obj, sub_key):
                            setattr(config_obj, sub_key, sub_value)
                else:
                    setattr(self.app_config, key, value)

    def save_yaml_config(self):
        """Save current configuration to YAML file"""
        config_dict = self.app_config.model_dump()

        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.config_path, 'w') as f:
            yaml.dump(config_dict, f, default_flow_style=False)

    def get_config(self) -> AppConfig:
        """Get the current configuration"""
        return self.app_config

    @property
    def is_production(self) -> bool:
        """Check if running in production mode"""
        return self.app_config.environment == "production"


# Global config instance
config_manager = ConfigManager()
config = config_manager.get_config()
