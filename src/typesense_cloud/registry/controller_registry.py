"""Registry mapping resource kinds to their controllers."""

from typing import Any

from typesense_cloud.interfaces.resource_controller import ResourceController
from typesense_cloud.utils.logging import get_logger

logger = get_logger(__name__)


class ControllerRegistry:
    """Registry for resource controllers.

    Selecting a controller is a dictionary lookup on the resource kind.
    """

    def __init__(self) -> None:
        self._controllers: dict[str, ResourceController[Any, Any]] = {}

    def register(self, controller: ResourceController[Any, Any]) -> None:
        """Register a controller under its kind.

        Args:
            controller: Controller to register

        Raises:
            ValueError: If another controller already handles the kind
        """
        if controller.kind in self._controllers:
            raise ValueError(f"Controller already registered for kind '{controller.kind}'")

        self._controllers[controller.kind] = controller
        logger.debug("controller_registered", kind=controller.kind)

    def get(self, kind: str) -> ResourceController[Any, Any]:
        """Get the controller for a kind.

        Args:
            kind: Resource kind

        Returns:
            Registered controller

        Raises:
            KeyError: If no controller handles the kind
        """
        try:
            return self._controllers[kind]
        except KeyError:
            raise KeyError(
                f"No controller for kind '{kind}' (known: {', '.join(self.kinds())})"
            ) from None

    def kinds(self) -> list[str]:
        """Get registered kinds in registration order."""
        return list(self._controllers)

    def __contains__(self, kind: object) -> bool:
        return kind in self._controllers

    def __len__(self) -> int:
        return len(self._controllers)
