"""Capability registry and base definitions for the MCP server."""

from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional, Tuple

from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError

from ..core.exceptions import (
    CapabilityError,
    CapabilityNotFoundError,
    DuplicateCapabilityError,
    InputValidationError,
)
from ..core.models import CapabilityKind, CapabilityResult
from ..utils.logger import get_logger
from .protocol import MCPToolInfo, MCPPromptInfo, MCPResourceInfo

logger = get_logger(__name__)

EMPTY_SCHEMA: Dict[str, Any] = {"type": "object", "properties": {}}


class Capability(ABC):
    """Base class for invocable capabilities."""

    kind: CapabilityKind

    def __init__(
        self,
        name: str,
        description: str,
        input_schema: Optional[Dict[str, Any]] = None,
        title: Optional[str] = None,
    ):
        """Initialize capability."""
        self.name = name
        self.title = title
        self.description = description
        self.input_schema = input_schema or dict(EMPTY_SCHEMA)

        try:
            Draft7Validator.check_schema(self.input_schema)
        except SchemaError as e:
            raise CapabilityError(f"Invalid input schema for '{name}': {e.message}")
        self._validator = Draft7Validator(self.input_schema)

    @abstractmethod
    async def execute(
        self, params: Dict[str, Any], context: Optional[Dict[str, Any]] = None
    ) -> CapabilityResult:
        """Execute the capability."""
        pass

    def validate_input(self, params: Dict[str, Any]) -> None:
        """Validate arguments against the input schema."""
        errors = sorted(self._validator.iter_errors(params), key=lambda e: list(e.path))
        if errors:
            details = "; ".join(
                f"{'.'.join(str(p) for p in error.path) or 'arguments'}: {error.message}"
                for error in errors
            )
            raise InputValidationError(f"Invalid arguments for '{self.name}': {details}")

    @abstractmethod
    def describe(self) -> Dict[str, Any]:
        """Listing entry in MCP format."""
        pass


class ActionCapability(Capability):
    """Capability exposed as an MCP tool."""

    kind = CapabilityKind.ACTION

    def describe(self) -> Dict[str, Any]:
        return MCPToolInfo(
            name=self.name,
            title=self.title,
            description=self.description,
            inputSchema=self.input_schema,
        ).model_dump(exclude_none=True)


class ResourceCapability(Capability):
    """Capability exposed as an MCP resource."""

    kind = CapabilityKind.RESOURCE

    def __init__(
        self,
        name: str,
        uri: str,
        description: str,
        mime_type: str = "application/json",
        title: Optional[str] = None,
    ):
        super().__init__(name=name, description=description, title=title)
        self.uri = uri
        self.mime_type = mime_type

    def describe(self) -> Dict[str, Any]:
        return MCPResourceInfo(
            uri=self.uri,
            name=self.name,
            title=self.title,
            description=self.description,
            mimeType=self.mime_type,
        ).model_dump(exclude_none=True)


class PromptCapability(Capability):
    """Capability exposed as an MCP prompt template."""

    kind = CapabilityKind.PROMPT

    def arguments(self) -> List[Dict[str, Any]]:
        required = set(self.input_schema.get("required", []))
        return [
            {
                "name": name,
                "description": prop.get("description"),
                "required": name in required,
            }
            for name, prop in self.input_schema.get("properties", {}).items()
        ]

    def describe(self) -> Dict[str, Any]:
        return MCPPromptInfo(
            name=self.name,
            title=self.title,
            description=self.description,
            arguments=self.arguments(),
        ).model_dump(exclude_none=True)


class CapabilityRegistry:
    """Registry of capabilities keyed by kind and name.

    Registration happens at startup; after ``seal()`` the set is fixed.
    """

    def __init__(self):
        """Initialize capability registry."""
        self._capabilities: Dict[Tuple[CapabilityKind, str], Capability] = {}
        self._sealed = False

    def register(self, capability: Capability) -> None:
        """Register a new capability. Names are unique within a kind."""
        if self._sealed:
            raise CapabilityError("Registry is sealed; register capabilities at startup")

        key = (capability.kind, capability.name)
        if key in self._capabilities:
            raise DuplicateCapabilityError(
                f"{capability.kind.value} '{capability.name}' already registered"
            )

        if isinstance(capability, ResourceCapability) and self.find_resource(capability.uri):
            raise DuplicateCapabilityError(f"Resource URI '{capability.uri}' already registered")

        self._capabilities[key] = capability
        logger.info(f"Registered {capability.kind.value}: {capability.name}")

    def seal(self) -> None:
        self._sealed = True

    @property
    def sealed(self) -> bool:
        return self._sealed

    def get(self, kind: CapabilityKind, name: str) -> Optional[Capability]:
        """Get a capability by kind and name."""
        return self._capabilities.get((kind, name))

    def list(self, kind: CapabilityKind) -> List[Capability]:
        """List capabilities of one kind in registration order."""
        return [c for (k, _), c in self._capabilities.items() if k == kind]

    def find_resource(self, uri: str) -> Optional[ResourceCapability]:
        for capability in self.list(CapabilityKind.RESOURCE):
            if isinstance(capability, ResourceCapability) and capability.uri == uri:
                return capability
        return None

    def counts(self) -> Dict[str, int]:
        return {kind.value: len(self.list(kind)) for kind in CapabilityKind}

    async def invoke(
        self,
        kind: CapabilityKind,
        name: str,
        arguments: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> CapabilityResult:
        """
        Invoke a capability by kind and name.

        Raises:
            CapabilityNotFoundError: If nothing is registered under kind and name
            InputValidationError: If arguments do not match the input schema
        """
        capability = self.get(kind, name)
        if capability is None:
            raise CapabilityNotFoundError(f"{kind.value.capitalize()} '{name}' not found")

        params = arguments or {}
        capability.validate_input(params)

        try:
            return await capability.execute(params, context)
        except Exception as e:
            logger.exception(
                f"Capability {name} raised", extra={"capability": name}
            )
            return CapabilityResult.failure(f"{name} failed: {e}")
