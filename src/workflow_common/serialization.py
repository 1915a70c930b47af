"""Schema-validated JSON persistence with SHA256 checksums.

Payloads are validated against a JSON Schema 2020-12 document before they are
written, written atomically, and accompanied by a ``.sha256`` file that is
verified on load. Bundled schemas live in :mod:`workflow_common.schemas` and
are resolved by file name through :func:`schema_path`.

Examples
--------
>>> from pathlib import Path
>>> from workflow_common.serialization import deserialize_json, schema_path, serialize_json
>>> meta = {"format": 1, "opstamp": 0, "segment": None, "num_docs": 0}
>>> out = Path("/tmp/workflow-meta-demo.json")
>>> digest = serialize_json(meta, schema_path("index_meta.v1.json"), out)
>>> deserialize_json(out, schema_path("index_meta.v1.json")) == meta
True
"""

from __future__ import annotations

import hashlib
import json
from importlib import resources
from pathlib import Path
from typing import cast

from jsonschema import validate as jsonschema_validate
from jsonschema.exceptions import SchemaError as JsonSchemaError
from jsonschema.exceptions import ValidationError

from workflow_common.errors import SchemaError
from workflow_common.fs import atomic_write, read_text
from workflow_common.logging import get_logger

__all__ = [
    "compute_checksum",
    "deserialize_json",
    "schema_path",
    "serialize_json",
    "validate_payload",
    "verify_checksum",
]

logger = get_logger(__name__)

_schema_cache: dict[str, dict[str, object]] = {}


def schema_path(name: str) -> Path:
    """Return the filesystem path of a bundled schema.

    Parameters
    ----------
    name : str
        Schema file name, e.g. ``"index_meta.v1.json"``.

    Returns
    -------
    Path
        Location of the schema inside the installed package.
    """
    return Path(str(resources.files("workflow_common.schemas").joinpath(name)))


def _load_schema_cached(path: Path) -> dict[str, object]:
    """Load and parse a JSON Schema file, caching by resolved path.

    Raises
    ------
    SchemaError
        If the schema file is missing, is not valid JSON, or is not an object.
    """
    key = str(path.resolve())
    cached = _schema_cache.get(key)
    if cached is not None:
        return cached
    try:
        raw: object = json.loads(read_text(path))
    except (OSError, json.JSONDecodeError) as exc:
        msg = f"Failed to load schema {path}"
        raise SchemaError(msg, cause=exc, context={"schema_path": str(path)}) from exc
    if not isinstance(raw, dict):
        msg = f"Schema must be a JSON object at root, got {type(raw).__name__}"
        raise SchemaError(msg, context={"schema_path": str(path)})
    schema_obj = cast("dict[str, object]", raw)
    _schema_cache[key] = schema_obj
    return schema_obj


def validate_payload(payload: object, schema: Path) -> None:
    """Validate a payload against a JSON Schema 2020-12.

    Parameters
    ----------
    payload : object
        JSON-compatible value.
    schema : Path
        Path to the schema file.

    Raises
    ------
    SchemaError
        If the payload does not match the schema or the schema is invalid.
    """
    schema_obj = _load_schema_cached(schema)
    try:
        jsonschema_validate(instance=payload, schema=schema_obj)
    except ValidationError as exc:
        msg = f"Schema validation failed: {exc.message}"
        raise SchemaError(msg, cause=exc, context={"schema_path": str(schema)}) from exc
    except JsonSchemaError as exc:
        msg = f"Invalid schema: {exc.message}"
        raise SchemaError(msg, cause=exc, context={"schema_path": str(schema)}) from exc


def compute_checksum(data: bytes) -> str:
    """Compute the hexadecimal SHA256 checksum of ``data``.

    Examples
    --------
    >>> len(compute_checksum(b"test data"))
    64
    """
    return hashlib.sha256(data).hexdigest()


def verify_checksum(data: bytes, expected: str) -> None:
    """Raise :class:`SchemaError` unless ``data`` hashes to ``expected``."""
    actual = compute_checksum(data)
    if actual != expected:
        msg = f"Checksum mismatch: expected {expected[:16]}..., got {actual[:16]}..."
        raise SchemaError(msg)


def _checksum_path(data_path: Path) -> Path:
    return data_path.with_suffix(data_path.suffix + ".sha256")


def serialize_json(
    obj: object,
    schema: Path,
    output_path: Path,
    *,
    include_checksum: bool = True,
    indent: int | None = None,
) -> str:
    """Serialize ``obj`` to JSON after schema validation.

    Parameters
    ----------
    obj : object
        JSON-serializable value.
    schema : Path
        Schema the value must satisfy.
    output_path : Path
        Destination file; written atomically.
    include_checksum : bool, optional
        Write a ``.sha256`` file alongside the output. Defaults to True.
    indent : int | None, optional
        JSON indentation; None writes compact output. Defaults to None.

    Returns
    -------
    str
        SHA256 checksum of the written bytes.

    Raises
    ------
    SchemaError
        If validation, encoding or writing fails.
    """
    validate_payload(obj, schema)
    try:
        json_text = json.dumps(obj, indent=indent, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        msg = f"Failed to serialize object to JSON: {exc}"
        raise SchemaError(msg, cause=exc) from exc

    checksum = compute_checksum(json_text.encode("utf-8"))
    try:
        if include_checksum:
            atomic_write(_checksum_path(output_path), checksum)
        atomic_write(output_path, json_text)
    except OSError as exc:
        msg = f"Failed to write JSON output to {output_path}"
        raise SchemaError(msg, cause=exc, context={"path": str(output_path)}) from exc

    logger.debug(
        "Serialized JSON",
        extra={
            "operation": "serialize",
            "output_path": str(output_path),
            "checksum": checksum,
        },
    )
    return checksum


def deserialize_json(
    data_path: Path,
    schema: Path,
    *,
    verify_checksum_file: bool = True,
) -> object:
    """Load JSON from ``data_path``, verifying its checksum and schema.

    Parameters
    ----------
    data_path : Path
        JSON file to read.
    schema : Path
        Schema the loaded value must satisfy.
    verify_checksum_file : bool, optional
        Verify against the ``.sha256`` file when present. A missing checksum
        file is logged and tolerated. Defaults to True.

    Returns
    -------
    object
        The decoded JSON value.

    Raises
    ------
    SchemaError
        If the file is unreadable, corrupt, or fails validation.
    """
    try:
        data_bytes = data_path.read_bytes()
    except OSError as exc:
        msg = f"Failed to read JSON from {data_path}"
        raise SchemaError(msg, cause=exc, context={"path": str(data_path)}) from exc

    if verify_checksum_file:
        checksum_file = _checksum_path(data_path)
        if checksum_file.exists():
            try:
                verify_checksum(data_bytes, read_text(checksum_file).strip())
            except SchemaError as exc:
                msg = f"Checksum verification failed for {data_path}"
                raise SchemaError(msg, cause=exc, context={"path": str(data_path)}) from exc
        else:
            logger.warning(
                "Checksum file not found, skipping verification",
                extra={"operation": "deserialize", "data_path": str(data_path)},
            )

    try:
        obj: object = json.loads(data_bytes.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        msg = f"Invalid JSON in {data_path}"
        raise SchemaError(msg, cause=exc, context={"path": str(data_path)}) from exc

    validate_payload(obj, schema)
    return obj
