"""A wallet: the mnemonic it is derived from and the nonces it has used."""

from __future__ import annotations

import hashlib
import json
import os
import unicodedata
from dataclasses import dataclass, field
from typing import Optional, Union

_PBKDF2_ROUNDS = 2048


class WalletError(Exception):
    """Raised when a wallet file cannot be read, written or decoded."""


@dataclass
class Wallet:
    """Mnemonic phrase plus the last regular nonce and per-account MPN nonces."""

    mnemonic: str
    tx_nonce: Optional[int] = None
    mpn_nonces: dict[int, Optional[int]] = field(default_factory=dict)

    def mpn_indices(self) -> list[int]:
        return list(self.mpn_nonces)

    def add_mpn_index(self, index: int) -> None:
        self.mpn_nonces[index] = None

    def reset(self) -> None:
        """Forget all known nonces, keeping the MPN account indices."""
        self.tx_nonce = None
        self.mpn_nonces = dict.fromkeys(self.mpn_nonces)

    def add_rsend(self, nonce: int) -> None:
        self.tx_nonce = nonce

    def add_deposit(self, nonce: int) -> None:
        self.tx_nonce = nonce

    def add_withdraw(self, index: int, nonce: int) -> None:
        self.mpn_nonces[index] = nonce

    def add_zsend(self, index: int, nonce: int) -> None:
        self.mpn_nonces[index] = nonce

    def new_r_nonce(self) -> Optional[int]:
        return None if self.tx_nonce is None else self.tx_nonce + 1

    def new_z_nonce(self, index: int) -> Optional[int]:
        nonce = self.mpn_nonces.get(index)
        return None if nonce is None else nonce + 1

    def seed(self) -> bytes:
        """The 64-byte BIP-39 seed of the mnemonic with an empty passphrase."""
        phrase = unicodedata.normalize("NFKD", self.mnemonic).encode("utf-8")
        salt = unicodedata.normalize("NFKD", "mnemonic").encode("utf-8")
        return hashlib.pbkdf2_hmac("sha512", phrase, salt, _PBKDF2_ROUNDS)

    @classmethod
    def open(cls, path: Union[str, os.PathLike]) -> Optional[Wallet]:
        """Load a saved wallet; ``None`` if the file cannot be opened."""
        try:
            handle = open(path, "rb")
        except OSError:
            return None
        try:
            with handle:
                raw = handle.read()
        except OSError as exc:
            raise WalletError(f"io error happened: {exc}") from exc
        try:
            doc = json.loads(raw.decode("utf-8"))
            mnemonic = doc["mnemonic"]
            tx_nonce = doc["tx_nonce"]
            nonces = {int(k): v for k, v in doc["mpn_nonces"].items()}
            if not isinstance(mnemonic, str):
                raise TypeError("mnemonic must be text")
            for value in (tx_nonce, *nonces.values()):
                if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
                    raise TypeError("nonces must be integers")
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise WalletError(f"wallet corrupted: {exc}") from exc
        return cls(mnemonic, tx_nonce, nonces)

    def save(self, path: Union[str, os.PathLike]) -> None:
        doc = {
            "mnemonic": self.mnemonic,
            "tx_nonce": self.tx_nonce,
            "mpn_nonces": {str(k): v for k, v in self.mpn_nonces.items()},
        }
        try:
            with open(path, "w", encoding="utf-8") as handle:
                json.dump(doc, handle)
        except OSError as exc:
            raise WalletError(f"io error happened: {exc}") from exc