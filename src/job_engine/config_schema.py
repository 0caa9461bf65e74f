"""
JSON schemas for configuration validation.
"""

ENGINE_SCHEMA = {
    "type": "object",
    "properties": {
        "queue_size": {"type": "integer", "minimum": 1},
        "max_attempts": {"type": "integer", "minimum": 1},
        "base_delay": {"type": "number", "minimum": 0.0},
        "attempt_timeout": {"type": ["number", "null"], "exclusiveMinimum": 0},
        "artifacts_dir": {"type": "string"},
    },
    "additionalProperties": False,
}

LOGGING_SCHEMA = {
    "type": "object",
    "properties": {
        "level": {"type": "string", "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]},
        "format": {"type": "string", "enum": ["text", "json"]},
        "logger_name": {"type": "string"},
    },
}

STORAGE_SCHEMA = {
    "type": "object",
    "properties": {
        "backend": {"type": "string", "enum": ["memory", "postgres"]},
        "dsn": {"type": ["string", "null"]},
        "jobs_table": {"type": "string", "pattern": "^[a-zA-Z0-9_]+$"},
        "artifacts_table": {"type": "string", "pattern": "^[a-zA-Z0-9_]+$"},
        "pool_min_size": {"type": "integer", "minimum": 1},
        "pool_max_size": {"type": "integer", "minimum": 1},
    },
    "allOf": [
        {
            "if": {"properties": {"backend": {"const": "postgres"}}, "required": ["backend"]},
            "then": {"required": ["dsn"]},
        },
    ],
}

CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "engine": ENGINE_SCHEMA,
        "logging": LOGGING_SCHEMA,
        "storage": STORAGE_SCHEMA,
    },
}
