"""Typed failures raised by the gathering services.

Every error carries the raw identifiers involved (user, gathering, title,
post) so the presentation layer can resolve display names and format its
own message; ``str(err)`` gives a plain English fallback.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    NAME_CONFLICT = "name_conflict"
    NOT_ALLOWED_FIELD = "not_allowed_field"
    AUTHORIZATION = "authorization"
    STATE_CONFLICT = "state_conflict"
    INTEGRITY_VIOLATION = "integrity_violation"


class GatheringError(ValueError):
    kind: ErrorKind
    template = "{gathering}"

    def __init__(self, **identifiers: object) -> None:
        self.identifiers = identifiers
        for key, value in identifiers.items():
            setattr(self, key, value)
        super().__init__(self.template.format(**identifiers))

    def format(self, **display: object) -> str:
        """Render the message, substituting display values for raw identifiers."""
        values = {**self.identifiers, **display}
        return self.template.format(**values)


# -- NotFound ----------------------------------------------------------------


class GatheringNotFoundError(GatheringError):
    kind = ErrorKind.NOT_FOUND
    template = "Gathering {gathering} does not exist!"

    def __init__(self, gathering: object) -> None:
        super().__init__(gathering=gathering)


# -- NameConflict ------------------------------------------------------------


class NameConflictError(GatheringError):
    kind = ErrorKind.NAME_CONFLICT
    template = "{creator} already has a gathering named {title}!"

    def __init__(self, creator: str, title: str) -> None:
        super().__init__(creator=creator, title=title)


# -- NotAllowedField ---------------------------------------------------------


class NotAllowedFieldError(GatheringError):
    kind = ErrorKind.NOT_ALLOWED_FIELD
    template = "Cannot update '{field}' field!"

    def __init__(self, field: str) -> None:
        super().__init__(field=field)


# -- AuthorizationFailure ----------------------------------------------------


class AuthorizationError(GatheringError):
    kind = ErrorKind.AUTHORIZATION

    def __init__(self, user: str, gathering: object) -> None:
        super().__init__(user=user, gathering=gathering)


class NotHostError(AuthorizationError):
    template = "{user} is not a host of gathering {gathering}!"


class NotInvitedError(AuthorizationError):
    template = "{user} has not been invited to gathering {gathering}!"


class PendingInviteError(AuthorizationError):
    template = "{user} has not accepted their invite to gathering {gathering}!"


# -- StateConflict -----------------------------------------------------------


class StateConflictError(GatheringError):
    kind = ErrorKind.STATE_CONFLICT


class GatheringAlreadyCanceledError(StateConflictError):
    template = "{gathering} is already canceled!"

    def __init__(self, gathering: object) -> None:
        super().__init__(gathering=gathering)


class GatheringCanceledError(StateConflictError):
    template = "Gathering {gathering} is canceled and cannot be changed!"

    def __init__(self, gathering: object) -> None:
        super().__init__(gathering=gathering)


class _UserStateConflictError(StateConflictError):
    def __init__(self, user: str, gathering: object) -> None:
        super().__init__(user=user, gathering=gathering)


class HostAlreadyExistsError(_UserStateConflictError):
    template = "Gathering {gathering} already has user {user} as a host!"


class HostNotFoundError(_UserStateConflictError):
    template = "{user} is not currently a host of gathering {gathering}!"


class CannotRemoveCreatorError(_UserStateConflictError):
    template = "{user} created gathering {gathering} and must remain a host!"


class InviteAlreadyExistsError(_UserStateConflictError):
    template = "{user} has already been invited to gathering {gathering}!"


class AlreadyAcceptedInviteError(_UserStateConflictError):
    template = "{user} has already accepted their invite to gathering {gathering}!"


class AlreadyDeclinedInviteError(_UserStateConflictError):
    template = "{user} has already declined their invite to gathering {gathering}!"


class InviteNotAcceptedError(_UserStateConflictError):
    template = "{user} has not currently accepted their invite to gathering {gathering}!"


class _PostStateConflictError(StateConflictError):
    def __init__(self, post: str, gathering: object) -> None:
        super().__init__(post=post, gathering=gathering)


class PostAlreadyAddedError(_PostStateConflictError):
    template = "{post} has already been added to gathering {gathering}!"


class PostNotAddedError(_PostStateConflictError):
    template = "{post} is not currently added to gathering {gathering}!"


# -- IntegrityViolation ------------------------------------------------------


class IntegrityViolationError(GatheringError):
    kind = ErrorKind.INTEGRITY_VIOLATION


class GatheringHasInvitesError(IntegrityViolationError):
    template = (
        "Cannot delete gathering {gathering} because it already has invitees. "
        "Can only cancel gathering."
    )

    def __init__(self, gathering: object) -> None:
        super().__init__(gathering=gathering)
