"""Security repository protocol."""

from typing import Protocol, Optional

from portfolio_tracker.domain.models import Security


class SecurityRepository(Protocol):
    """Interface for security master data access."""

    def create(self, security: Security) -> Security:
        """Persist a new security (symbol must be unique)."""
        ...

    def get_by_id(self, security_id: str) -> Optional[Security]:
        ...

    def get_by_symbol(self, symbol: str) -> Optional[Security]:
        ...

    def update_metadata(self, security: Security) -> Security:
        """Update display metadata; the symbol never changes."""
        ...
