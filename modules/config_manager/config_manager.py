import copy
import json
import os
import hashlib
import logging
import psutil
import jsonschema
from typing import Dict, Any, Optional

from modules.config_manager.schema import SEARCH_CONFIG_SCHEMA
from modules.model_factory import EstimatorFactory
from modules.param_grid import count_assignments, validate_param_grid
from modules.scoring import get_scorer
from utils import constants
from utils.error_handling import handle_engine_errors
from utils.exceptions import ConfigurationError, SchemaError
from utils.resource_limits import ResourceLimitsValidator


class ConfigurationManager:
    """
    Manages search configuration loading, validation, and access.
    Acts as the single source of truth and safety guard for a search run.
    """

    DEFAULTS = {
        'scoring': 'r2',
        'cv': {
            'n_splits': constants.DEFAULT_CV_SPLITS,
            'shuffle': constants.DEFAULT_CV_SHUFFLE,
            'seed': constants.DEFAULT_CV_SEED,
        },
        'search': {
            'n_jobs': 1,
            'cv_n_jobs': 1,
            'on_error': constants.ON_ERROR_RAISE,
            'dispatch': constants.DISPATCH_STATIC,
            'reuse_scratch': True,
            'verbose': False,
        },
        'resources': {
            'max_search_configs': constants.MAX_SEARCH_CONFIGURATIONS,
        },
        'logging': {
            'level': 'INFO',
            'log_to_console': True,
            'log_to_file': False,
            'colorful_console': True,
            'log_dir': constants.DEFAULT_LOG_DIR,
        },
    }

    def __init__(self, config_path: Optional[str] = None,
                 schema_path: Optional[str] = None):
        """
        Initialize the ConfigurationManager.

        Args:
            config_path (str): Path to the search configuration JSON.
            schema_path (str): Optional path to a JSON schema; the built-in
                search schema is used when omitted.
        """
        self.config_path = config_path
        self.schema_path = schema_path
        self.config: Dict[str, Any] = {}
        self.schema: Dict[str, Any] = {}
        self.logger = logging.getLogger("config_manager")

    @handle_engine_errors("Configuration loading", wrap_as=ConfigurationError)
    def load_and_validate(self, config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Main entry point. Loads config, validates schema/logic/resources
        and applies defaults.

        Args:
            config: Configuration dictionary to use instead of `config_path`.

        Returns:
            Dict[str, Any]: The fully validated and hydrated configuration.

        Raises:
            ConfigurationError: If any validation step fails.
        """
        # 1. Load
        if config is not None:
            self.config = copy.deepcopy(config)
        elif self.config_path is not None:
            self.config = self._load_json(self.config_path)
        else:
            raise ConfigurationError("No configuration given: pass a dict or set config_path.")
        self.schema = self._load_json(self.schema_path) if self.schema_path else SEARCH_CONFIG_SCHEMA

        # 2. Structural Validation (Schema)
        self._validate_schema()

        # 3. Defaults
        self._apply_defaults()

        # 4. Logical Validation (Names, Bounds)
        self._validate_logic()

        # 5. Resource Validation (Grid Explosion, Oversubscription)
        self._validate_resources()

        self.logger.debug(f"Configuration validated (hash {self.config_hash()[:12]})")
        return self.config

    def config_hash(self) -> str:
        """SHA256 of the canonical JSON form of the loaded configuration."""
        config_str = json.dumps(self.config, sort_keys=True, default=str)
        return hashlib.sha256(config_str.encode()).hexdigest()

    def _load_json(self, path: str) -> Dict[str, Any]:
        """Safely load a JSON file."""
        if not os.path.exists(path):
            raise ConfigurationError(f"File not found: {path}")
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {str(e)}")

    def _validate_schema(self) -> None:
        """Validate config structure against JSON schema."""
        try:
            jsonschema.validate(instance=self.config, schema=self.schema)
        except jsonschema.ValidationError as e:
            location = "/".join(str(p) for p in e.absolute_path) or "<root>"
            raise ConfigurationError(f"Schema validation failed at {location}: {e.message}")

    def _apply_defaults(self) -> None:
        for key, default in self.DEFAULTS.items():
            if isinstance(default, dict):
                section = self.config.setdefault(key, {})
                for name, value in default.items():
                    section.setdefault(name, value)
            else:
                self.config.setdefault(key, default)
        self.config['estimator'].setdefault('params', {})

    def _validate_logic(self) -> None:
        """Logical validation of names and bounds."""
        # --- Estimator / Scoring ---
        model = self.config['estimator']['model']
        if model not in EstimatorFactory.get_available_models():
            raise ConfigurationError(
                f"Unknown estimator model '{model}'. Available: {EstimatorFactory.get_available_models()}"
            )
        scorer = get_scorer(self.config['scoring'])

        # --- Parameter Grid ---
        try:
            validate_param_grid(self.config['param_grid'])
        except SchemaError as e:
            raise ConfigurationError(f"Invalid param_grid: {e}") from e
        if constants.SCORE_COLUMN in self.config['param_grid']:
            raise ConfigurationError(
                f"param_grid may not contain a parameter named '{constants.SCORE_COLUMN}'"
            )

        # --- CV ---
        n_splits = self.config['cv']['n_splits']
        if n_splits < constants.MIN_CV_SPLITS:
            raise ConfigurationError(f"cv.n_splits must be >= {constants.MIN_CV_SPLITS}, got {n_splits}.")

        # --- Search ---
        search = self.config['search']
        for key in ('n_jobs', 'cv_n_jobs'):
            n_jobs = search[key]
            if n_jobs == 0 or n_jobs < -1:
                raise ConfigurationError(f"search.{key} must be -1 (all cores) or a positive integer, got {n_jobs}")
        if search.get('lower_is_better') is None:
            search['lower_is_better'] = scorer.lower_is_better

    def _validate_resources(self) -> None:
        """
        Validate against system resources.
        Counts the grid and ensures it fits within safe limits before any fitting starts.
        """
        grid_size = count_assignments(self.config['param_grid'])
        validator = ResourceLimitsValidator(self.logger)
        ok, violations = validator.validate_config(self.config, grid_size)
        if not ok:
            errors = [v.message for v in violations if v.severity == 'error']
            raise ConfigurationError("Resource validation failed: " + " ".join(errors))
        self.logger.info(
            f"Search grid size validated: {grid_size} assignments "
            f"(Limit: {self.config['resources']['max_search_configs']})"
        )

        # Memory ceiling: default to 80% of physical RAM
        system_ram_mb = int(psutil.virtual_memory().total / (1024 * 1024))
        safe_ram_limit = int(system_ram_mb * constants.MAX_MEMORY_USAGE_PERCENT / 100)
        config_max_ram = self.config['resources'].get('max_memory_mb', safe_ram_limit)
        if config_max_ram > system_ram_mb:
            self.logger.warning(
                f"Configured max_memory_mb ({config_max_ram}MB) exceeds physical system RAM ({system_ram_mb}MB). "
                "This may lead to instability."
            )
        self.config['resources']['max_memory_mb'] = config_max_ram
