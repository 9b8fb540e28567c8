"""Client-side account deletion flow.

    IDLE -> CONFIRMING_FIRST -> CONFIRMING_FINAL -> IN_FLIGHT -> RESOLVED
                  |                    |
                  +------> IDLE <------+        (declined)

RESOLVED goes back to IDLE on the next request. Anything else raises
InvalidTransition.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from threading import RLock
from typing import Callable, Dict, FrozenSet, Optional

from config import log
from schemas.account import SessionCredential
from utils.errors import DeletionRequestFailed

DELETED_CATEGORIES = (
    "Your account and email identity",
    "All profiles and contacts you created",
    "All reminders and scheduled texts",
    "User-owned files (e.g., profile photos) stored by ARMi",
    "Any app-side analytics tied to your account",
)


class DeletionState(str, Enum):
    IDLE = "idle"
    CONFIRMING_FIRST = "confirming_first"
    CONFIRMING_FINAL = "confirming_final"
    IN_FLIGHT = "in_flight"
    RESOLVED = "resolved"


TRANSITIONS: Dict[DeletionState, FrozenSet[DeletionState]] = {
    DeletionState.IDLE: frozenset({DeletionState.CONFIRMING_FIRST}),
    DeletionState.CONFIRMING_FIRST: frozenset({DeletionState.CONFIRMING_FINAL, DeletionState.IDLE}),
    DeletionState.CONFIRMING_FINAL: frozenset({DeletionState.IN_FLIGHT, DeletionState.IDLE}),
    DeletionState.IN_FLIGHT: frozenset({DeletionState.RESOLVED}),
    DeletionState.RESOLVED: frozenset({DeletionState.IDLE}),
}


class InvalidTransition(RuntimeError):
    pass


def can_transition(src: DeletionState, dst: DeletionState) -> bool:
    return dst in TRANSITIONS.get(src, frozenset())


@dataclass(frozen=True)
class Prompt:
    title: str
    message: str
    confirm_label: str
    cancel_label: str


FIRST_WARNING = Prompt(
    title="Delete Account",
    message=(
        "This action is permanent and will remove:\n- "
        + "\n- ".join(DELETED_CATEGORIES)
        + "\nYou will not be able to recover this data."
    ),
    confirm_label="Continue",
    cancel_label="Cancel",
)

SUBSCRIPTION_NOTICE = (
    "If you subscribed via the App Store or Google Play, "
    "cancel your subscription there to stop future charges."
)

FIRST_WARNING_SUBSCRIBED = replace(FIRST_WARNING, message=f"{FIRST_WARNING.message}\n\n{SUBSCRIPTION_NOTICE}")

FINAL_CONFIRMATION = Prompt(
    title="Final confirmation",
    message="Are you absolutely sure you want to delete your account and all associated data?",
    confirm_label="Yes, delete",
    cancel_label="No",
)


@dataclass(frozen=True)
class DeletionOutcome:
    status: str
    message: str = ""
    retryable: bool = False

    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"
    REJECTED = "rejected"

    @property
    def succeeded(self) -> bool:
        return self.status == self.SUCCESS

    @classmethod
    def success(cls) -> "DeletionOutcome":
        return cls(cls.SUCCESS, "Your account has been permanently deleted.")

    @classmethod
    def failure(cls, message: str, retryable: bool = True) -> "DeletionOutcome":
        return cls(cls.FAILURE, message, retryable)

    @classmethod
    def cancelled(cls) -> "DeletionOutcome":
        return cls(cls.CANCELLED)

    @classmethod
    def rejected(cls, message: str) -> "DeletionOutcome":
        return cls(cls.REJECTED, message)


Confirmer = Callable[[Prompt], bool]


def build_deletion_controller(confirm: Confirmer, session_store=None, entitlements=None) -> "DeletionController":
    from clients.account_api_client import AccountApiClient
    from clients.revenuecat_client import RevenueCatClient
    from clients.supabase_auth_client import SupabaseAuthClient
    from services.entitlement_reconciler import EntitlementReconciler
    from storage.session_store import SessionStore

    session_store = session_store or SessionStore()
    entitlements = entitlements or RevenueCatClient()
    user_id = session_store.user_id()
    if user_id:
        entitlements.log_in(user_id)

    return DeletionController(
        confirm,
        api=AccountApiClient(),
        reconciler=EntitlementReconciler(entitlements),
        session_store=session_store,
        identity=SupabaseAuthClient(),
        entitlements=entitlements,
    )


class DeletionController:
    def __init__(self, confirm: Confirmer, api, reconciler, session_store, identity, entitlements=None) -> None:
        self._confirm = confirm
        self._api = api
        self._reconciler = reconciler
        self._session_store = session_store
        self._identity = identity
        self._entitlements = entitlements
        self._state = DeletionState.IDLE
        self._lock = RLock()

    @property
    def state(self) -> DeletionState:
        return self._state

    @property
    def in_flight(self) -> bool:
        return self._state is DeletionState.IN_FLIGHT

    def _transition(self, dst: DeletionState) -> None:
        with self._lock:
            if not can_transition(self._state, dst):
                raise InvalidTransition(f"{self._state.value} -> {dst.value}")
            self._state = dst

    def _begin(self) -> Optional[DeletionOutcome]:
        with self._lock:
            if self._state not in (DeletionState.IDLE, DeletionState.RESOLVED):
                return DeletionOutcome.rejected("Account deletion already in progress")
            if self._state is DeletionState.RESOLVED:
                self._transition(DeletionState.IDLE)
            self._transition(DeletionState.CONFIRMING_FIRST)
        return None

    def _ask(self, prompt: Prompt) -> bool:
        try:
            return bool(self._confirm(prompt))
        except Exception:
            self._transition(DeletionState.IDLE)
            raise

    def _first_warning(self) -> Prompt:
        if self._entitlements is None or not getattr(self._entitlements, "configured", True):
            return FIRST_WARNING
        try:
            subscribed = self._entitlements.has_pro_entitlement()
        except Exception as e:
            log.warning("Entitlement lookup failed, showing the plain warning: %s", e)
            return FIRST_WARNING
        return FIRST_WARNING_SUBSCRIBED if subscribed else FIRST_WARNING

    def request_deletion(self) -> DeletionOutcome:
        credential: Optional[SessionCredential] = self._session_store.load()
        if credential is None:
            return DeletionOutcome.failure("You must be signed in to delete your account.", retryable=False)

        rejected = self._begin()
        if rejected:
            log.info("Delete account ignored: %s", rejected.message)
            return rejected

        if not self._ask(self._first_warning()):
            self._transition(DeletionState.IDLE)
            return DeletionOutcome.cancelled()
        self._transition(DeletionState.CONFIRMING_FINAL)

        if not self._ask(FINAL_CONFIRMATION):
            self._transition(DeletionState.IDLE)
            return DeletionOutcome.cancelled()
        self._transition(DeletionState.IN_FLIGHT)

        try:
            outcome = self._perform(credential)
        finally:
            self._transition(DeletionState.RESOLVED)
        return outcome

    def _perform(self, credential: SessionCredential) -> DeletionOutcome:
        log.info("Invoking delete-account")
        try:
            self._api.delete_account(credential)
        except DeletionRequestFailed as e:
            log.error("Delete account error (%s): %s", e.code, e.message)
            return DeletionOutcome.failure(e.message, retryable=e.retryable)
        except Exception as e:
            log.exception("Delete account error")
            return DeletionOutcome.failure(str(e) or "Failed to delete account. Please try again in a moment.")

        # Server side is done; nothing below may turn this into a failure.
        self._reconciler.reconcile()
        self._teardown(credential)
        log.info("Account deletion flow complete")
        return DeletionOutcome.success()

    def _teardown(self, credential: SessionCredential) -> None:
        try:
            self._session_store.clear()
        except Exception:
            log.exception("Failed to clear local session")
        try:
            self._identity.sign_out_local(credential)
        except Exception:
            log.exception("Failed to sign out of identity provider")
