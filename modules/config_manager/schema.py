"""JSON schema for search configuration files."""

SEARCH_CONFIG_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Grid search configuration",
    "type": "object",
    "required": ["estimator", "param_grid"],
    "properties": {
        "estimator": {
            "type": "object",
            "required": ["model"],
            "properties": {
                "model": {"type": "string", "minLength": 1},
                "params": {"type": "object"}
            },
            "additionalProperties": False
        },
        "param_grid": {
            "type": "object",
            "additionalProperties": {
                "type": "array",
                "minItems": 1,
                "items": {"type": ["string", "number", "boolean", "null"]}
            }
        },
        "scoring": {"type": "string", "minLength": 1},
        "cv": {
            "type": "object",
            "properties": {
                "n_splits": {"type": "integer"},
                "shuffle": {"type": "boolean"},
                "seed": {"type": ["integer", "null"], "minimum": 0}
            },
            "additionalProperties": False
        },
        "search": {
            "type": "object",
            "properties": {
                "n_jobs": {"type": "integer"},
                "cv_n_jobs": {"type": "integer"},
                "lower_is_better": {"type": ["boolean", "null"]},
                "on_error": {"enum": ["raise", "collect"]},
                "dispatch": {"enum": ["static", "dynamic"]},
                "reuse_scratch": {"type": "boolean"},
                "verbose": {"type": "boolean"}
            },
            "additionalProperties": False
        },
        "resources": {
            "type": "object",
            "properties": {
                "max_search_configs": {"type": "integer", "minimum": 1},
                "max_memory_mb": {"type": "integer", "minimum": 1}
            }
        },
        "logging": {
            "type": "object",
            "properties": {
                "level": {"enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL",
                                   "debug", "info", "warning", "error", "critical"]},
                "log_to_console": {"type": "boolean"},
                "log_to_file": {"type": "boolean"},
                "colorful_console": {"type": "boolean"},
                "log_dir": {"type": "string"}
            }
        }
    }
}
