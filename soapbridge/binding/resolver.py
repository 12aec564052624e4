"""
Overload resolution.

Picks the overload of an operation that best matches a request document.
Resolution is pure: it performs no I/O and keeps no state between calls.
"""

from dataclasses import dataclass
from typing import Any

from ..contracts.descriptors import OperationDescriptor, ServiceDescriptor
from ..exceptions import ArgumentBindingError, NoMatchingOverloadError
from ..logger import get_logger
from .binder import ArgumentBinder

logger = get_logger(__name__)


@dataclass(frozen=True)
class Resolution:
    """The chosen overload with its bound arguments and score."""

    operation: OperationDescriptor
    arguments: tuple[Any, ...]
    score: int

    @property
    def keyword_arguments(self) -> dict[str, Any]:
        return dict(zip(self.operation.parameter_names, self.arguments))


class OverloadResolver:
    """Resolves (service, operation name, document) to a concrete overload."""

    def __init__(self, binder: ArgumentBinder | None = None):
        self.binder = binder or ArgumentBinder()

    def resolve(self, service: ServiceDescriptor, operation_name: str, document: Any) -> Resolution:
        """Select the highest scoring overload of ``operation_name``.

        Overloads whose binding hard-fails are discarded. Ties go to the
        overload declared first.

        Raises:
            OperationNotFoundError: If the service has no such operation.
            ArgumentBindingError: If every overload failed on a supplied field.
            NoMatchingOverloadError: If the document matched no overload.
        """
        overloads = service.find_overloads(operation_name)

        best: Resolution | None = None
        failures: list[ArgumentBindingError] = []
        for candidate in overloads:
            try:
                bound = self.binder.bind(candidate, document)
            except ArgumentBindingError as e:
                failures.append(e)
                continue
            if bound is None:
                continue
            if best is None or bound.score > best.score:
                best = Resolution(candidate, bound.arguments, bound.score)

        if best is not None:
            logger.debug(
                "Overload resolved",
                service=service.name,
                operation=best.operation.signature(),
                score=best.score,
                discarded=len(failures),
            )
            return best

        if failures:
            if len(failures) == 1:
                raise failures[0]
            raise ArgumentBindingError(
                f"No overload of '{operation_name}' on service '{service.name}' "
                "accepted the supplied fields",
                details={
                    "service": service.name,
                    "operation": operation_name,
                    "failures": [failure.details for failure in failures],
                },
            )

        raise NoMatchingOverloadError(
            f"Request body for '{operation_name}' must be a JSON object, "
            f"got {type(document).__name__}",
            details={"service": service.name, "operation": operation_name},
        )
