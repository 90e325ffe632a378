"""
sessionpay/core/crypto.py

SessionPay Cryptographic Layer

Two key families live here:

    secp256k1 (node side)   : settlement authorizations. A node signs
                              keccak256(uint256 session_id || uint256 amount)
                              under Ethereum "signed message" framing; the
                              protocol recovers the signer address and compares
                              it to the node owner registered in the directory.
    Ed25519 (operator side) : event journal entries.

Key contracts:
    SignatureAuthority.verify(signer, message, sig) -> bool
        False for a zero/empty signer (checked first), False for any
        recovery failure. Raises InvalidSignatureLength ONLY when the
        signature blob is not 65 bytes.
    parse_signature(sig) -> (r, s, v)
        v is normalized: raw recovery ids 0/1 become 27/28.
    NodeKeyManager.sign_settlement(session_id, amount) -> 65 bytes, v in {27, 28}
"""

import base64
from pathlib import Path
from typing import Optional, Tuple, Union

from coincurve import PrivateKey, PublicKey
from Crypto.Hash import keccak
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
)

from sessionpay.core.exceptions import InvalidSignatureLength, ValidationError


ZERO_ADDRESS = "0x" + "0" * 40

SIGNATURE_LENGTH = 65

# Ethereum personal_sign prefix for a 32-byte message
_SIGNED_MESSAGE_PREFIX = b"\x19Ethereum Signed Message:\n32"

# Canonical recovery values accepted by ecrecover
_V_BASE = 27

SignatureLike = Union[bytes, bytearray, str]


# ─────────────────────────────────────────────────────────────
# Hashing
# ─────────────────────────────────────────────────────────────

def keccak256(data: bytes) -> bytes:
    """Ethereum keccak-256 (pre-standard SHA-3 padding)."""
    h = keccak.new(digest_bits=256)
    h.update(data)
    return h.digest()


def _uint256(value: int) -> bytes:
    if value < 0 or value >= 1 << 256:
        raise ValidationError(
            "Value does not fit in uint256", {"value": value}
        )
    return value.to_bytes(32, "big")


def settlement_hash(session_id: int, amount_paid: int) -> bytes:
    """
    The message a node signs to authorize payment for a session.

    keccak256(abi.encodePacked(uint256 session_id, uint256 amount_paid))
    """
    return keccak256(_uint256(session_id) + _uint256(amount_paid))


def eth_signed_message_hash(message_hash: bytes) -> bytes:
    """Domain-separated digest: keccak256("\\x19Ethereum Signed Message:\\n32" || hash)."""
    if len(message_hash) != 32:
        raise ValidationError(
            "Signed message must be a 32-byte hash",
            {"length": len(message_hash)},
        )
    return keccak256(_SIGNED_MESSAGE_PREFIX + message_hash)


# ─────────────────────────────────────────────────────────────
# Addresses
# ─────────────────────────────────────────────────────────────

def public_key_to_address(public_key: PublicKey) -> str:
    """Last 20 bytes of keccak256 over the uncompressed point (without 0x04)."""
    raw = public_key.format(compressed=False)[1:]
    return to_checksum_address("0x" + keccak256(raw)[-20:].hex())


def to_checksum_address(address: str) -> str:
    """EIP-55 mixed-case checksum encoding."""
    hex_part = address.lower()
    if hex_part.startswith("0x"):
        hex_part = hex_part[2:]
    if len(hex_part) != 40:
        raise ValidationError("Address must be 20 bytes", {"address": address})
    try:
        bytes.fromhex(hex_part)
    except ValueError:
        raise ValidationError("Address is not valid hex", {"address": address})
    digest = keccak256(hex_part.encode("ascii")).hex()
    return "0x" + "".join(
        c.upper() if int(digest[i], 16) >= 8 else c
        for i, c in enumerate(hex_part)
    )


def is_zero_address(address: Optional[str]) -> bool:
    return not address or address.lower() == ZERO_ADDRESS


def same_address(a: str, b: str) -> bool:
    return a.lower() == b.lower()


# ─────────────────────────────────────────────────────────────
# Signature parsing
# ─────────────────────────────────────────────────────────────

def signature_bytes(signature: SignatureLike) -> bytes:
    """Accept raw bytes or a hex string (with or without 0x)."""
    if isinstance(signature, (bytes, bytearray)):
        return bytes(signature)
    text = signature[2:] if signature.startswith(("0x", "0X")) else signature
    try:
        return bytes.fromhex(text)
    except ValueError:
        raise ValidationError("Signature is not valid hex")


def parse_signature(signature: SignatureLike) -> Tuple[int, int, int]:
    """
    Split a 65-byte signature into (r, s, v).

    Layout is r (32) || s (32) || v (1). Encoders that emit the raw
    recovery id (0 or 1) are normalized to 27/28.
    """
    raw = signature_bytes(signature)
    if len(raw) != SIGNATURE_LENGTH:
        raise InvalidSignatureLength(
            "Signature must be 65 bytes",
            {"length": len(raw)},
        )
    r = int.from_bytes(raw[:32], "big")
    s = int.from_bytes(raw[32:64], "big")
    v = raw[64]
    if v < _V_BASE:
        v += _V_BASE
    return r, s, v


# ─────────────────────────────────────────────────────────────
# Signature Authority
# ─────────────────────────────────────────────────────────────

class SignatureAuthority:
    """
    Stateless verifier for node settlement signatures.

    Public surface:
        SignatureAuthority.recover(message, signature) → Optional[str]
        SignatureAuthority.verify(signer, message, sig) → bool
    """

    @staticmethod
    def recover(message: bytes, signature: SignatureLike) -> Optional[str]:
        """
        Recover the checksum address that signed `message` (a 32-byte hash)
        under signed-message framing.

        Returns None when recovery fails or v is outside {27, 28}.
        Raises InvalidSignatureLength for a malformed blob.
        """
        r, s, v = parse_signature(signature)
        if v not in (_V_BASE, _V_BASE + 1):
            return None
        digest = eth_signed_message_hash(message)
        compact = r.to_bytes(32, "big") + s.to_bytes(32, "big") + bytes([v - _V_BASE])
        try:
            public_key = PublicKey.from_signature_and_message(
                compact, digest, hasher=None
            )
        except Exception:
            return None
        return public_key_to_address(public_key)

    @staticmethod
    def verify(claimed_signer: str, message: bytes, signature: SignatureLike) -> bool:
        """
        True iff `signature` over `message` recovers to `claimed_signer`.

        The zero identity never verifies. Never raises except
        InvalidSignatureLength.
        """
        if is_zero_address(claimed_signer):
            return False
        recovered = SignatureAuthority.recover(message, signature)
        if recovered is None:
            return False
        return same_address(recovered, claimed_signer)


# ─────────────────────────────────────────────────────────────
# Node keys (secp256k1)
# ─────────────────────────────────────────────────────────────

class NodeKeyManager:
    """
    secp256k1 key held by a node owner.

    Public surface:
        NodeKeyManager.generate()                  → new random key
        NodeKeyManager.from_private_bytes(seed)    → load from raw 32-byte secret
        NodeKeyManager.from_hex(hex)               → load from hex secret

        key.address                                (@property) → checksum address
        key.sign_message(message_hash)             → 65-byte signature, v in {27, 28}
        key.sign_settlement(session_id, amount)    → 65-byte signature
        key.private_bytes_raw()                    → raw 32-byte secret
    """

    def __init__(self, private_key: PrivateKey) -> None:
        self._private_key = private_key
        self._address     = public_key_to_address(private_key.public_key)

    @classmethod
    def generate(cls) -> "NodeKeyManager":
        return cls(PrivateKey())

    @classmethod
    def from_private_bytes(cls, secret: bytes) -> "NodeKeyManager":
        """Raises ValueError if secret is not a valid 32-byte scalar."""
        if len(secret) != 32:
            raise ValueError(
                f"secp256k1 secret must be 32 bytes, got {len(secret)}"
            )
        return cls(PrivateKey(secret))

    @classmethod
    def from_hex(cls, secret_hex: str) -> "NodeKeyManager":
        if secret_hex.startswith(("0x", "0X")):
            secret_hex = secret_hex[2:]
        return cls.from_private_bytes(bytes.fromhex(secret_hex))

    @property
    def address(self) -> str:
        return self._address

    def sign_message(self, message_hash: bytes) -> bytes:
        """Sign a 32-byte hash under signed-message framing."""
        digest = eth_signed_message_hash(message_hash)
        sig    = self._private_key.sign_recoverable(digest, hasher=None)
        return sig[:64] + bytes([sig[64] + _V_BASE])

    def sign_settlement(self, session_id: int, amount_paid: int) -> bytes:
        """Authorize payment of exactly `amount_paid` for `session_id`."""
        return self.sign_message(settlement_hash(session_id, amount_paid))

    def private_bytes_raw(self) -> bytes:
        """Use only for secure backup. Never log or transmit."""
        return self._private_key.secret

    def __repr__(self) -> str:
        return f"NodeKeyManager(address={self._address})"


# ─────────────────────────────────────────────────────────────
# Operator keys (Ed25519)
# ─────────────────────────────────────────────────────────────

class OperatorKeyManager:
    """
    Ed25519 key of the process operating the protocol.

    The event journal signs each entry hash with it and records
    `public_key_hex` alongside, so a journal can be checked later by anyone
    holding that hex string (`verify_detached`). The key lives in a PEM file
    created on first run by the runtime context.
    """

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key = private_key
        self._public_key_hex = (
            private_key.public_key()
            .public_bytes(Encoding.Raw, PublicFormat.Raw)
            .hex()
        )

    @classmethod
    def generate(cls) -> "OperatorKeyManager":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_file(cls, path: Path) -> "OperatorKeyManager":
        """
        Load the operator key from its PEM file.

        Raises FileNotFoundError when the file is missing and ValueError
        when it does not hold an Ed25519 private key.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Operator key not found: {path}")
        try:
            private_key = load_pem_private_key(path.read_bytes(), password=None)
        except ValueError as exc:
            raise ValueError(f"Unreadable operator key {path}: {exc}") from exc
        if not isinstance(private_key, Ed25519PrivateKey):
            raise ValueError(f"Operator key {path} is not an Ed25519 key")
        return cls(private_key)

    @property
    def public_key_hex(self) -> str:
        """Raw 32-byte public key, lowercase hex. Stored in every journal entry."""
        return self._public_key_hex

    def sign(self, entry_hash: bytes) -> str:
        """Sign a journal entry hash. Returns unpadded base64url."""
        raw_sig = self._private_key.sign(entry_hash)
        return base64.urlsafe_b64encode(raw_sig).rstrip(b"=").decode("ascii")

    @staticmethod
    def verify_detached(entry_hash: bytes, signature: str, public_key_hex: str) -> bool:
        """True if `signature` is the operator's over `entry_hash`. Never raises."""
        try:
            public_key = Ed25519PublicKey.from_public_bytes(bytes.fromhex(public_key_hex))
            raw_sig = base64.urlsafe_b64decode(signature + "=" * (-len(signature) % 4))
            public_key.verify(raw_sig, entry_hash)
        except Exception:
            return False
        return True

    def save(self, path: Path) -> None:
        """Write the key as unencrypted PKCS8 PEM, creating parent directories."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self._private_key.private_bytes(
            encoding=Encoding.PEM,
            format=PrivateFormat.PKCS8,
            encryption_algorithm=NoEncryption(),
        ))

    def __repr__(self) -> str:
        return f"OperatorKeyManager(public_key_hex={self._public_key_hex[:16]}...)"
