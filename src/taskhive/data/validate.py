from typing import Dict, Any
from packaging import version
from jsonschema import validate, ValidationError, SchemaError

from taskhive.logs import get_logger
from taskhive.models import Database
from taskhive.recovery import CorruptionError, FatalError, MigrationNeededError
from taskhive.version import APP_SCHEMA_VERSION

log = get_logger("data.validate")

_SCHEMA_CACHE: Dict[str, Any] = {}

def database_schema() -> dict:
    """JSON schema of the store file, generated from the Database model."""
    if "database" not in _SCHEMA_CACHE:
        _SCHEMA_CACHE["database"] = Database.model_json_schema()
    return _SCHEMA_CACHE["database"]

def validate_database(data: dict) -> bool:
    """
    Validate a loaded store document against the generated schema.

    Returns:
        True if the document is valid, False otherwise.
    """
    try:
        validate(instance=data, schema=database_schema())
        log.debug("Store document is VALID")
        return True
    except ValidationError as e:
        log.error(f"Store document FAILED validation: {e.message}")
        return False
    except SchemaError as e:
        log.error(f"Validation failed: the generated schema itself is invalid. Error: {e.message}")
        return False

def check_schema_version(file_version: str, app_version: str = APP_SCHEMA_VERSION) -> bool:
    """
    Compare the schema version recorded in a store file against the app's.

    Raises:
        CorruptionError: the recorded version is not a version string
        FatalError: the file was written by a newer release
        MigrationNeededError: the file predates the current schema
    """
    try:
        found = version.parse(str(file_version))
    except version.InvalidVersion as e:
        raise CorruptionError(f"Invalid schema version in store file: {file_version!r}") from e

    current = version.parse(app_version)
    log.info(f"STORE: {found}; APP: {current};")
    if found > current:
        raise FatalError(f"Store file uses schema {found}, newer than this release ({current})")
    if found < current:
        raise MigrationNeededError(f"Store file uses schema {found}, migrate data to {current}")
    return True
