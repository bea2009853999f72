from abc import ABC, abstractmethod


class IdentityResolver(ABC):
    """Maps opaque user identifiers to display names. Provided by the caller."""

    @abstractmethod
    def ids_to_usernames(self, user_ids: list[str]) -> list[str]: ...
