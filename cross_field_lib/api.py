"""
Public API for cross-field-lib

This is the "front door" - the entry point a host framework or application
uses for cross-field validation.
"""

import dataclasses
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Sequence

from .config_loader import ConfigLoader
from .context import ReportingContext
from .dispatcher import ValidationDispatcher, get_dispatcher
from .registry import ValidatorRegistry
from .validator import get_field_value

logger = logging.getLogger(__name__)


class CrossFieldValidationService:
    """
    Main cross-field validation service class.

    Example:
        from cross_field_lib import CrossFieldValidationService

        service = CrossFieldValidationService()
        violations = service.validate(signup_form)
        for v in violations:
            print(f"{v['field']}: {v['message']}")
    """

    def __init__(
        self,
        config_path: Optional[str] = None,
        dispatcher: Optional[ValidationDispatcher] = None,
    ):
        """
        Initialize the service.

        The service:
        1. Loads the bundled default-config.yaml, overlaid by config_path
        2. Applies log_level to the cross_field_lib logger
        3. Builds a dispatcher whose registry carries the configured bindings;
           field discovery is shared with the process-wide dispatcher
        4. Creates the batch thread pool if batch_parallelism is enabled

        Args:
            config_path: Optional user config (path, file:// or http(s):// URI)
            dispatcher: Use this dispatcher instead of building one

        Raises:
            ConfigurationError: If the config is invalid or a binding cannot
                be imported
        """
        self.config_loader = ConfigLoader(config_path)
        logging.getLogger("cross_field_lib").setLevel(self.config_loader.get_log_level())

        if dispatcher is None:
            dispatcher = ValidationDispatcher(
                metadata_cache=get_dispatcher().metadata_cache,
                registry=ValidatorRegistry(self.config_loader.get_bindings()),
            )
        self.dispatcher = dispatcher

        self._pool: Optional[ThreadPoolExecutor] = None
        self._create_pool()

        logger.info(
            "Cross-field validation service initialized",
            extra={
                "config_path": config_path,
                "bindings": len(self.config_loader.get_bindings()),
                "batch_parallelism": self._pool is not None,
            },
        )

    def _create_pool(self) -> None:
        """Create the batch thread pool. No-op when batch_parallelism is false."""
        if not self.config_loader.get_batch_parallelism():
            return
        max_workers = self.config_loader.get_batch_max_workers()
        self._pool = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="cross-field"
        )
        logger.debug(f"Batch worker pool created (max_workers={max_workers})")

    def validate(self, obj: Any) -> List[Dict[str, str]]:
        """
        Validate the cross-field constraints of a single object.

        Args:
            obj: Object whose class declares marker-annotated fields

        Returns:
            List of violation dicts in the order validators ran, each with:
                - field: Name of the field the violation is reported on
                - message: Human-readable message
            Empty when the object is valid.

        Example:
            violations = service.validate(SignupForm("secret", "secrte"))
            # [{"field": "confirm_password", "message": "Fields do not match."}]
        """
        outcome = self.dispatcher.validate(obj)
        return [{"field": v.field_name, "message": v.message} for v in outcome.violations]

    def is_valid(self, obj: Any, context: ReportingContext) -> bool:
        """
        Host framework entry point: validate obj and report into context.

        On failure the context's default violation is disabled and each
        violation is added as a property violation on its field.
        """
        return self.dispatcher.validate(obj, context).valid

    def batch_validate(self, objects: Sequence[Any], id_fields: Sequence[str] = ("id",)) -> List[Dict[str, Any]]:
        """
        Validate multiple objects in a single operation.

        Args:
            objects: Objects to validate
            id_fields: Field names used to build each object's identifier

        Returns:
            List of per-object results in input order, each containing:
                - object_id: Identifier built from id_fields ("unknown" if none)
                - object_type: Class name of the object
                - valid: Whether every constraint held
                - violations: Same format as validate()
        """
        if self._pool is not None:
            # Futures are collected in submission order, so results keep
            # the input order regardless of which thread finishes first.
            futures = [
                self._pool.submit(self._validate_one, obj, id_fields) for obj in objects
            ]
            return [f.result() for f in futures]

        return [self._validate_one(obj, id_fields) for obj in objects]

    def _validate_one(self, obj: Any, id_fields: Sequence[str]) -> Dict[str, Any]:
        outcome = self.dispatcher.validate(obj)
        return {
            "object_id": self._extract_id(obj, id_fields),
            "object_type": type(obj).__qualname__,
            "valid": outcome.valid,
            "violations": [
                {"field": v.field_name, "message": v.message} for v in outcome.violations
            ],
        }

    def discover_constraints(self, cls: type) -> Dict[str, List[Dict[str, Any]]]:
        """
        Describe the markers declared on cls without validating anything.

        Args:
            cls: Class to inspect

        Returns:
            Dict mapping each marker-carrying field name to a list of:
                - marker: Marker class name
                - validator: Bound validator class name, or None if inert
                - parameters: Marker dataclass fields (empty for other markers)

        Raises:
            ConfigurationError: If a marker has conflicting bindings
        """
        layout = self.dispatcher.metadata_cache.fields(cls)
        result = {}

        for field in layout:
            if not field.markers:
                continue
            described = []
            for marker in field.markers:
                validator_cls = self.dispatcher.registry.binding_for(type(marker))
                parameters = {}
                if dataclasses.is_dataclass(marker) and not isinstance(marker, type):
                    parameters = dataclasses.asdict(marker)
                described.append(
                    {
                        "marker": type(marker).__qualname__,
                        "validator": validator_cls.__qualname__ if validator_cls else None,
                        "parameters": parameters,
                    }
                )
            result[field.name] = described

        return result

    def _extract_id(self, obj: Any, id_fields: Sequence[str]) -> str:
        """Concatenate the present id_fields values with '-', or "unknown"."""
        id_parts = []
        for name in id_fields:
            value = get_field_value(obj, name)
            if value is not None:
                id_parts.append(str(value))

        if not id_parts:
            return "unknown"

        return "-".join(id_parts)

    def close(self) -> None:
        """
        Shut down the batch thread pool.

        Safe to call multiple times or when batch_parallelism is disabled.
        """
        if self._pool is not None:
            self._pool.shutdown(wait=True)
            self._pool = None

    def __enter__(self) -> "CrossFieldValidationService":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
