"""Interface for presenting results to the user.

Defines the contract for displaying records, errors, warnings and
informational messages, allowing different UI implementations
(e.g., rich console, plain JSON).
"""

import abc
from typing import Any, Optional

from campfin.domain.models.common import Record, Records


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_records(self, records: Records, title: str, **kwargs: Any) -> None:
        """Displays the records of a list endpoint.

        Args:
            records: The records to display.
            title: Heading for the listing.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_record(self, record: Optional[Record], title: str, **kwargs: Any) -> None:
        """Displays a single record (or a notice when there is none)."""
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user."""
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user."""
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user."""
        pass
