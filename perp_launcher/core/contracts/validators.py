"""
Payload contracts for the HTTP collaborators

Engine and stats-store payloads are checked against Draft 2020-12 schemas
shipped in schema/:
- simulation_status.json    engine status response
- token_preview.json        engine token-metadata response
- start_engine_request.json body of the start request
- market_with_stats.json    one markets_with_stats row
"""

import json
from pathlib import Path
from typing import Any, ClassVar, Dict, List, Optional

from jsonschema import Draft202012Validator, SchemaError


SCHEMA_DIR = Path(__file__).parent / "schema"


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """
    Reads and checks schema documents, one parse per name.
    """

    def __init__(self, schema_dir: Optional[Path] = None):
        self._root = schema_dir or SCHEMA_DIR
        if not self._root.is_dir():
            raise RuntimeError(f"No schema directory at {self._root}")
        self._cache: Dict[str, Dict[str, Any]] = {}

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Return the parsed schema called `schema_name`.

        Raises:
            FileNotFoundError: No `<schema_name>.json` in the directory
            ValueError: The document is not a Draft 2020-12 schema
        """
        cached = self._cache.get(schema_name)
        if cached is not None:
            return cached

        path = self._root / f"{schema_name}.json"
        if not path.is_file():
            raise FileNotFoundError(f"No schema named {schema_name!r} in {self._root}")

        document = json.loads(path.read_text(encoding="utf-8"))
        try:
            Draft202012Validator.check_schema(document)
        except SchemaError as exc:
            raise ValueError(f"{path.name} is not a valid schema: {exc.message}") from exc

        self._cache[schema_name] = document
        return document


_loader = SchemaLoader()


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """
    Binds one packaged schema to a compiled validator.

    Subclasses only set `schema_name`; compiled validators are shared between
    instances of the same subclass.
    """

    schema_name: ClassVar[str] = ""
    _compiled: ClassVar[Dict[str, Draft202012Validator]] = {}

    def __init__(self):
        compiled = self._compiled.get(self.schema_name)
        if compiled is None:
            compiled = Draft202012Validator(_loader.load_schema(self.schema_name))
            self._compiled[self.schema_name] = compiled
        self._validator = compiled

    @property
    def schema(self) -> Dict[str, Any]:
        return self._validator.schema

    def validate(self, payload: Dict[str, Any]) -> None:
        """Raise jsonschema.ValidationError on the first violation."""
        self._validator.validate(payload)

    def is_valid(self, payload: Dict[str, Any]) -> bool:
        return self._validator.is_valid(payload)

    def problems(self, payload: Dict[str, Any]) -> List[str]:
        """Every violation as `path: message`, empty when the payload conforms."""
        return [
            f"{'/'.join(str(p) for p in error.absolute_path) or '<root>'}: {error.message}"
            for error in self._validator.iter_errors(payload)
        ]


class SimulationStatusValidator(ContractValidator):
    schema_name = "simulation_status"


class TokenPreviewValidator(ContractValidator):
    schema_name = "token_preview"


class StartEngineRequestValidator(ContractValidator):
    schema_name = "start_engine_request"


class MarketWithStatsValidator(ContractValidator):
    schema_name = "market_with_stats"


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def validate_simulation_status(data: Dict[str, Any]) -> None:
    """
    Check an engine status payload.

    Raises:
        ValidationError: If the payload breaks the contract
    """
    SimulationStatusValidator().validate(data)


def validate_token_preview(data: Dict[str, Any]) -> None:
    TokenPreviewValidator().validate(data)


def validate_start_engine_request(data: Dict[str, Any]) -> None:
    """
    Check the body sent to the start endpoint before it leaves the process.

    Raises:
        ValidationError: If the body breaks the contract
    """
    StartEngineRequestValidator().validate(data)


def validate_market_with_stats(data: Dict[str, Any]) -> None:
    MarketWithStatsValidator().validate(data)
