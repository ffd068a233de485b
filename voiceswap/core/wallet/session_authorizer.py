"""
Session authorizer for delegated ("quick swap") execution.

Manages the lifecycle of a single session key:
- Creation, gated by a human-presence authentication hook
- Limit checks before each delegated swap
- Signing user operations with the ephemeral key and tracking spend
- Revocation
"""

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Awaitable, Callable, Optional

from eth_abi import encode
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import keccak, to_checksum_address, to_hex

from ...config import settings
from ..errors import SessionError, WalletNotConnectedError
from .models import (
    ExecutionCheck,
    Permission,
    SessionAllowance,
    SessionInfo,
    SessionKey,
    SessionKeyStatus,
    SessionOptions,
    SignedUserOperation,
    SmartAccount,
    ValueLimit,
)


logger = logging.getLogger(__name__)

AuthenticateHook = Callable[[], Awaitable[bool]]


async def _always_authenticated() -> bool:
    return True


def format_expires_in(remaining: timedelta) -> str:
    """"1h 59m" above an hour, otherwise "45m"."""
    minutes = max(int(remaining.total_seconds() // 60), 0)
    if minutes > 60:
        return f"{minutes // 60}h {minutes % 60}m"
    return f"{minutes}m"


class SessionAuthorizer:
    """
    Holds at most one active session delegation for the connected wallet.

    Usage:
        authorizer = SessionAuthorizer(authenticate=prompt_biometrics)
        await authorizer.initialize("0x...")
        await authorizer.create_session()
        check = authorizer.can_execute(Decimal("50"), "swap")
        if check.allowed:
            signed = await authorizer.sign_user_operation(calldata, Decimal("50"))
    """

    def __init__(
        self,
        authenticate: Optional[AuthenticateHook] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._authenticate = authenticate or _always_authenticated
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._smart_account: Optional[SmartAccount] = None
        self._session: Optional[SessionKey] = None

    @property
    def wallet_address(self) -> Optional[str]:
        return self._smart_account.owner if self._smart_account else None

    @property
    def current_session(self) -> Optional[SessionKey]:
        return self._session

    async def initialize(self, wallet_address: str) -> None:
        """Bind the authorizer to the user's wallet."""
        if not wallet_address:
            raise WalletNotConnectedError()

        # The EOA doubles as the smart account address until a factory deploys one
        self._smart_account = SmartAccount(address=wallet_address, owner=wallet_address)
        logger.info(f"Session authorizer initialized for wallet {wallet_address}")

    async def create_session(self, options: Optional[SessionOptions] = None) -> SessionKey:
        """Create a new session key after the user authenticates once."""
        if self._smart_account is None:
            raise WalletNotConnectedError()

        options = options or SessionOptions()

        if not await self._authenticate():
            raise SessionError("Authentication was not completed")

        account = Account.create()
        duration = timedelta(minutes=options.duration_minutes or settings.session_duration_minutes)
        now = self._clock()

        session = SessionKey(
            session_id=SessionKey.generate_session_id(),
            session_address=account.address,
            private_key=to_hex(account.key),
            permissions={Permission.SWAP, Permission.QUOTE},
            value_limits=ValueLimit(
                max_value_per_tx_usd=Decimal(str(options.max_per_tx_usd or settings.session_max_per_tx_usd)),
                max_total_value_usd=Decimal(str(options.max_total_usd or settings.session_max_total_usd)),
            ),
            allowed_tokens=list(options.allowed_tokens or []),
            allowed_recipients=[self._smart_account.owner],
            created_at=now,
            expires_at=now + duration,
        )
        self._session = session

        logger.info(
            f"Created session {session.session_id} for {self._smart_account.owner}: "
            f"max per tx ${session.value_limits.max_value_per_tx_usd}, "
            f"max total ${session.value_limits.max_total_value_usd}, "
            f"expires {session.expires_at.isoformat()}"
        )
        return session

    def has_valid_session(self) -> bool:
        if self._session is None:
            return False
        if not self._session.is_valid_at(self._clock()):
            if self._session.status == SessionKeyStatus.ACTIVE:
                self._session.status = SessionKeyStatus.EXPIRED
            return False
        return True

    def get_remaining_allowance(self) -> SessionAllowance:
        if self._session is None:
            return SessionAllowance(per_tx=Decimal("0"), total=Decimal("0"))

        limits = self._session.value_limits
        remaining = limits.remaining_usd
        return SessionAllowance(per_tx=min(limits.max_value_per_tx_usd, remaining), total=remaining)

    def can_execute(self, estimated_usd: Decimal, kind: str = Permission.SWAP.value) -> ExecutionCheck:
        """Check an operation against the current session's permissions and limits."""
        if not self.has_valid_session():
            return ExecutionCheck(allowed=False, reason="No valid session. Please authorize a new session.")

        session = self._session
        allowed_kinds = {p.value for p in session.permissions}
        if kind not in allowed_kinds:
            return ExecutionCheck(allowed=False, reason=f"Action '{kind}' not allowed in this session.")

        limits = session.value_limits
        if estimated_usd <= 0:
            return ExecutionCheck(allowed=False, reason="Amount must be greater than zero.")

        if estimated_usd > limits.max_value_per_tx_usd:
            return ExecutionCheck(
                allowed=False,
                reason=f"Amount exceeds per-transaction limit of ${limits.max_value_per_tx_usd}.",
            )

        remaining = limits.remaining_usd
        if estimated_usd > remaining:
            return ExecutionCheck(
                allowed=False,
                reason=f"Amount exceeds remaining session limit of ${remaining:.2f}.",
            )

        return ExecutionCheck(allowed=True)

    async def sign_user_operation(self, calldata: str, estimated_usd: Decimal) -> SignedUserOperation:
        """Sign the user operation hash with the session key and record the spend."""
        if self._session is None or self._smart_account is None:
            raise SessionError("No active session")

        check = self.can_execute(estimated_usd, Permission.SWAP.value)
        if not check.allowed:
            raise SessionError(check.reason or "Session does not allow this swap")

        sender = to_checksum_address(self._smart_account.address)
        calldata_bytes = bytes.fromhex(calldata[2:] if calldata.startswith("0x") else calldata)
        user_op_hash = keccak(encode(["address", "bytes"], [sender, calldata_bytes]))

        signed = Account.sign_message(encode_defunct(primitive=user_op_hash), private_key=self._session.private_key)

        self._session.value_limits.record_transaction(estimated_usd)
        logger.info(
            f"Signed delegated operation for ${estimated_usd}; "
            f"spent ${self._session.value_limits.total_value_used_usd}, "
            f"remaining ${self._session.value_limits.remaining_usd}"
        )

        return SignedUserOperation(
            signature=to_hex(signed.signature),
            user_op={"sender": sender, "callData": calldata},
        )

    def revoke_session(self) -> bool:
        """Revoke the current session. Returns False when none existed."""
        if self._session is None:
            return False
        self._session.status = SessionKeyStatus.REVOKED
        logger.info(f"Revoked session {self._session.session_id}")
        self._session = None
        return True

    def get_session_info(self) -> SessionInfo:
        if not self.has_valid_session():
            return SessionInfo(active=False)

        return SessionInfo(
            active=True,
            expires_in=format_expires_in(self._session.expires_at - self._clock()),
            remaining=self.get_remaining_allowance(),
        )


__all__ = ["SessionAuthorizer", "AuthenticateHook", "format_expires_in"]
