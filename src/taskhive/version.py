VERSION = "0.3.0"
APP_SCHEMA_VERSION = "1.1.0"
