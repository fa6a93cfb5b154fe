"""Ownership transfer for a single Drive file.

Drive refuses to make someone an owner outright. The recipient first needs a
writer permission flagged ``pendingOwner``; that permission is then promoted
to ``owner`` with ``transferOwnership=true``:

    grant   -> create writer + pendingOwner for the recipient
    lookup  -> find the recipient's permission id (exact email match)
    promote -> patch that permission to owner

A failure aborts the sequence. Nothing is rolled back unless
``TransferOptions.revoke_on_failure`` is set, in which case the pending grant
is deleted before the original error is re-raised. A permission the recipient
held before the run is never deleted.
"""
from typing import Any, Iterable, Optional

import structlog
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..metrics import record_transfer_status, time_step
from ..models.contracts import (
    PermissionGrant,
    PermissionRecord,
    PermissionRole,
    PrincipalType,
    TransferOptions,
    TransferPreview,
)
from ..providers.base import PermissionStore
from ..providers.factory import get_provider
from ...utils.errors import (
    DriveHandoffError,
    GrantError,
    PermissionLookupError,
    PromotionError,
    ProviderError,
    TransferError,
    ValidationError,
)

logger = structlog.get_logger(__name__)


def _token(session: Any) -> str:
    return getattr(session, "token", None) or ""


def find_permission_id(records: Iterable[PermissionRecord], email: str, file_id: str) -> str:
    """Return the id of the permission whose email is exactly ``email``."""
    for record in records:
        if record.email_address == email:
            return record.id
    raise PermissionLookupError(
        f"User {email} does not have access to file {file_id}",
        file_id=file_id,
        recipient_email=email,
    )


async def _lookup(
    store: PermissionStore,
    file_id: str,
    token: str,
    recipient_email: str,
    options: TransferOptions,
) -> str:
    log = logger.bind(file_id=file_id, recipient=recipient_email)
    retrying = AsyncRetrying(
        stop=stop_after_attempt(options.lookup_attempts),
        wait=wait_exponential(multiplier=options.lookup_backoff, min=0, max=options.lookup_backoff_max),
        retry=retry_if_exception_type(PermissionLookupError),
        before_sleep=lambda state: log.info(
            "Recipient permission not visible yet, retrying lookup",
            attempt=state.attempt_number,
        ),
        reraise=True,
    )
    try:
        async for attempt in retrying:
            with attempt:
                records = await store.list_permissions(file_id, token)
                return find_permission_id(records, recipient_email, file_id)
    except ProviderError as exc:
        raise PermissionLookupError(
            exc.message,
            file_id=file_id,
            recipient_email=recipient_email,
            details={"original_error": exc.message},
        ) from exc


async def _revoke(
    store: PermissionStore,
    file_id: str,
    token: str,
    permission_id: str,
    error: TransferError,
    supports_all_drives: bool = True,
) -> None:
    log = logger.bind(file_id=file_id, permission_id=permission_id)
    try:
        await store.delete_permission(file_id, permission_id, token, supports_all_drives=supports_all_drives)
    except DriveHandoffError as exc:
        error.details["revoke_error"] = exc.message
        log.warning("Could not revoke pending grant", error=exc.message)
        record_transfer_status("revoke_failed")
        return
    error.details["revoked_permission_id"] = permission_id
    log.info("Revoked pending grant after failed transfer")
    record_transfer_status("revoked")


async def transfer_ownership(
    session: Any,
    file_id: str,
    recipient_email: str,
    store: Optional[PermissionStore] = None,
    options: Optional[TransferOptions] = None,
) -> PermissionRecord:
    """Make ``recipient_email`` the owner of ``file_id``.

    Args:
        session: Authenticated handle exposing a bearer ``token``; it is not refreshed here.
        file_id: Drive file id.
        recipient_email: New owner. Drive validates it, not us.
        store: Permission store, the Drive provider by default.
        options: Lookup retry and compensation knobs.

    Returns:
        The promoted permission record.

    Raises:
        GrantError, PermissionLookupError, PromotionError
    """
    if not file_id:
        raise ValidationError("file_id must not be empty", field="file_id")
    store = store or get_provider("gdrive")
    options = options or TransferOptions()
    token = _token(session)
    log = logger.bind(file_id=file_id, recipient=recipient_email)

    log.info("Starting ownership transfer")

    # Access the recipient already had must survive a compensating revoke.
    prior = None
    if options.revoke_on_failure:
        try:
            records = await store.list_permissions(file_id, token)
        except ProviderError as exc:
            log.error("Could not read permissions before grant", error=exc.message)
            record_transfer_status("grant_failed")
            raise GrantError(
                exc.message,
                file_id=file_id,
                recipient_email=recipient_email,
                details={"original_error": exc.message},
            ) from exc
        prior = next((r for r in records if r.email_address == recipient_email), None)

    grant = PermissionGrant(
        role=PermissionRole.WRITER,
        type=PrincipalType.USER,
        email_address=recipient_email,
        pending_owner=True,
    )
    try:
        with time_step("grant"):
            granted = await store.create_permission(file_id, token, grant.to_body())
    except ProviderError as exc:
        log.error("Grant failed", error=exc.message)
        record_transfer_status("grant_failed")
        raise GrantError(
            exc.message,
            file_id=file_id,
            recipient_email=recipient_email,
            details={"original_error": exc.message},
        ) from exc
    log.info("Granted writer access with pending ownership", permission_id=granted.id)

    permission_id = None
    try:
        with time_step("lookup"):
            permission_id = await _lookup(store, file_id, token, recipient_email, options)
        log.info("Found recipient permission", permission_id=permission_id)

        try:
            with time_step("promotion"):
                promoted = await store.update_permission(
                    file_id,
                    permission_id,
                    token,
                    {"role": PermissionRole.OWNER.value},
                    transfer_ownership=True,
                    supports_all_drives=options.supports_all_drives,
                )
        except ProviderError as exc:
            raise PromotionError(
                exc.message,
                file_id=file_id,
                recipient_email=recipient_email,
                details={"original_error": exc.message, "permission_id": permission_id},
            ) from exc
    except TransferError as error:
        log.error("Ownership transfer failed", step=error.details.get("step"), error=error.message)
        record_transfer_status(f"{error.details.get('step')}_failed")
        dangling = permission_id or granted.id
        if options.revoke_on_failure and prior is not None:
            error.details["revoke_skipped"] = prior.id
            log.warning(
                "Recipient had access before the transfer, not revoking",
                permission_id=prior.id,
                prior_role=prior.role,
            )
            record_transfer_status("revoke_skipped")
        elif options.revoke_on_failure and dangling:
            await _revoke(store, file_id, token, dangling, error, options.supports_all_drives)
        elif dangling:
            log.warning("Pending writer grant left in place", permission_id=dangling)
        raise

    log.info("Ownership transferred", permission_id=promoted.id, role=promoted.role)
    record_transfer_status("success")
    return promoted


async def preview_transfer(
    session: Any,
    file_id: str,
    recipient_email: str,
    store: Optional[PermissionStore] = None,
) -> TransferPreview:
    """Describe what transfer_ownership would do, without changing anything."""
    if not file_id:
        raise ValidationError("file_id must not be empty", field="file_id")
    store = store or get_provider("gdrive")
    records = await store.list_permissions(file_id, _token(session))

    owners = [r.email_address for r in records if r.is_owner and r.email_address]
    existing = next((r for r in records if r.email_address == recipient_email), None)

    steps = []
    if existing is not None and existing.is_owner:
        steps.append(f"{recipient_email} already owns {file_id}; a transfer would be rejected or be a no-op")
    else:
        if existing is None:
            steps.append(f"grant writer access to {recipient_email} with pendingOwner=true")
        else:
            steps.append(
                f"re-grant {recipient_email} (currently {existing.role}, permission {existing.id}) with pendingOwner=true"
            )
        steps.append(f"look up the permission id for {recipient_email}")
        steps.append("promote that permission to owner with transferOwnership=true")

    return TransferPreview(
        file_id=file_id,
        recipient_email=recipient_email,
        current_owners=owners,
        existing_permission=existing,
        steps=steps,
    )
