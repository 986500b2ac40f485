"""Build orchestration: validated mutations in, fully recomputed builds out."""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Literal, Mapping

from .compatibility import evaluate
from .db import CatalogDatabase
from .models import Build, CompatibilityReport, Component, normalize_category, utc_now
from .pricing import aggregate_build

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 1000


class BuildValidationError(Exception):
    """A build request was structurally invalid and never reached the engines."""

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")

    def to_dict(self) -> dict[str, str]:
        return {"error": self.message, "code": self.code}


class BuildNotFoundError(Exception):
    """No build exists with the requested id."""

    code = "build_not_found"

    def __init__(self, build_id: str):
        self.build_id = build_id
        super().__init__(f"Build not found: {build_id}")

    def to_dict(self) -> dict[str, str]:
        return {"error": str(self), "code": self.code}


@dataclass
class BuildMutation:
    build_id: str
    action: Literal["add", "remove"]
    category: str
    component: dict[str, Any] | None = None


def validate_mutation(payload: Any) -> BuildMutation:
    """Validate a {buildId, action, category, component?} request.

    Raises:
        BuildValidationError: with code missing_field, invalid_action,
            invalid_category or invalid_component
    """
    if not isinstance(payload, Mapping):
        raise BuildValidationError("missing_field", "Request body must be an object")

    build_id = payload.get("buildId") or payload.get("build_id")
    if not build_id or not isinstance(build_id, str):
        raise BuildValidationError("missing_field", "buildId is required")

    action = payload.get("action")
    if not action:
        raise BuildValidationError("missing_field", "action is required")
    if action not in ("add", "remove"):
        raise BuildValidationError("invalid_action", f"Unknown action: {action!r} (expected 'add' or 'remove')")

    raw_category = payload.get("category")
    if not raw_category:
        raise BuildValidationError("missing_field", "category is required")
    category = normalize_category(raw_category)
    if category is None:
        raise BuildValidationError("invalid_category", f"Unknown category: {raw_category!r}")

    component = payload.get("component")
    if action == "add":
        if component is None:
            raise BuildValidationError("missing_field", "component is required for action 'add'")
        if not isinstance(component, Mapping):
            raise BuildValidationError("invalid_component", "component must be an object")
        if not component.get("id") and not component.get("name"):
            raise BuildValidationError("invalid_component", "component needs an id or a name")
        component_category = component.get("category")
        if component_category and normalize_category(component_category) != category:
            raise BuildValidationError(
                "invalid_component",
                f"Component category {component_category!r} does not match slot {category!r}",
            )
        component = dict(component)

    return BuildMutation(build_id=build_id, action=action, category=category, component=component)


def recompute(build: Build) -> Build:
    """Rebuild every derived field from the current selection."""
    build.totals = aggregate_build(build.components)
    build.compatibility = evaluate(build.components)
    return build


class BuildService:
    """Holds builds in the catalog store and recomputes them on every mutation."""

    def __init__(self, store: CatalogDatabase):
        self.store = store

    def create_build(self, name: str, description: str = "") -> Build:
        name = (name or "").strip()
        if not name:
            raise BuildValidationError("missing_field", "name is required")
        build = Build(
            id=uuid.uuid4().hex,
            name=name[:MAX_NAME_LENGTH],
            description=(description or "").strip()[:MAX_DESCRIPTION_LENGTH],
        )
        recompute(build)
        self.store.save_build(build)
        logger.info(f"Created build {build.id}")
        return build

    def get_build(self, build_id: str) -> Build:
        build = self.store.find_build(build_id)
        if build is None:
            raise BuildNotFoundError(build_id)
        return recompute(build)

    def list_builds(self, limit: int = 50) -> list[Build]:
        return [recompute(b) for b in self.store.list_builds(limit)]

    def delete_build(self, build_id: str) -> None:
        if not self.store.delete_build(build_id):
            raise BuildNotFoundError(build_id)
        logger.info(f"Deleted build {build_id}")

    def apply(self, payload: Any) -> Build:
        """Apply a wire-format mutation and return the recomputed build."""
        mutation = validate_mutation(payload)
        if mutation.action == "add":
            return self.add_component(mutation.build_id, mutation.category, mutation.component or {})
        return self.remove_component(mutation.build_id, mutation.category)

    def add_component(self, build_id: str, category: str, component: Component | Mapping[str, Any]) -> Build:
        """Select a component for a category slot, replacing any earlier selection."""
        build = self.get_build(build_id)
        selected = component if isinstance(component, Component) else self._resolve_component(category, component)
        selected.category = category
        build.components[category] = selected
        return self._commit(build)

    def remove_component(self, build_id: str, category: str) -> Build:
        """Clear a category slot. Clearing an empty slot still returns the build."""
        build = self.get_build(build_id)
        build.components.pop(category, None)
        return self._commit(build)

    def check(self, components: Mapping[str, Component]) -> CompatibilityReport:
        """Ad-hoc compatibility check for a selection that is not a saved build."""
        return evaluate(components)

    def _resolve_component(self, category: str, data: Mapping[str, Any]) -> Component:
        """A full component object, or a bare {"id": ...} reference into the catalog."""
        if data.get("id") and not data.get("name"):
            found = self.store.find_component(str(data["id"]))
            if found is None:
                raise BuildValidationError("invalid_component", f"Unknown component id: {data['id']!r}")
            if found.category != category:
                raise BuildValidationError(
                    "invalid_component",
                    f"Component {found.id} is a {found.category}, not a {category}",
                )
            return found
        try:
            return Component.from_dict({**data, "category": category})
        except (AttributeError, TypeError, ValueError) as e:
            raise BuildValidationError("invalid_component", f"Malformed component: {e}") from e

    def _commit(self, build: Build) -> Build:
        recompute(build)
        build.updated_at = utc_now()
        self.store.save_build(build)
        return build
