"""
Ephemeral per-user account custody.

Keys are generated on first use and live only in process memory. Nothing
here is persisted; restarting the process forgets every account.
"""
import logging
import threading
from typing import Dict, Hashable, Optional, Protocol, Callable

from eth_account import Account
from eth_account.signers.local import LocalAccount

from ._locks import KeyedLock
from .exceptions import AccountCreationFailed
from .models import EphemeralAccount


class AccountStore(Protocol):
    """Protocol for account stores the pipeline can resolve users against"""

    def get_or_create(self, user_id: Hashable) -> EphemeralAccount:
        """Return the user's account, creating it on first use"""
        ...

    def get(self, user_id: Hashable) -> Optional[EphemeralAccount]:
        """Return the user's account or None"""
        ...


class AccountVault:
    """
    In-memory AccountStore with one ephemeral key per user.

    Reads are lock-free. Creation is serialized per user id, so concurrent
    first calls for the same user always observe a single account.
    """

    def __init__(
        self,
        key_factory: Optional[Callable[[], LocalAccount]] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the vault

        Args:
            key_factory: Callable producing a fresh LocalAccount
                (defaults to ``eth_account.Account.create``)
            logger: Optional logger instance
        """
        self._accounts: Dict[Hashable, EphemeralAccount] = {}
        self._accounts_lock = threading.RLock()
        self._creation_locks = KeyedLock()
        self._key_factory = key_factory or Account.create
        self.logger = logger or logging.getLogger(__name__)

    def get(self, user_id: Hashable) -> Optional[EphemeralAccount]:
        return self._accounts.get(user_id)

    def get_or_create(self, user_id: Hashable) -> EphemeralAccount:
        """
        Return the account for ``user_id``, generating one if absent.

        Raises:
            AccountCreationFailed: If key generation fails
        """
        account = self._accounts.get(user_id)
        if account is not None:
            return account

        with self._creation_locks.hold(user_id):
            # Another caller may have created it while we waited
            account = self._accounts.get(user_id)
            if account is not None:
                return account

            try:
                signer = self._key_factory()
                account = EphemeralAccount(address=signer.address, signer=signer)
            except Exception as e:
                self.logger.error(f"Key generation failed for user {user_id!r}: {e}")
                raise AccountCreationFailed(f"Could not create account: {e}") from e

            with self._accounts_lock:
                self._accounts[user_id] = account
            self.logger.info(f"Created ephemeral account {account.address} for user {user_id!r}")
            return account

    def __len__(self) -> int:
        return len(self._accounts)

    def __contains__(self, user_id: Hashable) -> bool:
        return user_id in self._accounts
