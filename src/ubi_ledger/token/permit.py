"""
Delegated Approval - Off-ledger signed spending authorizations

An owner signs (spender, value, nonce, deadline) offline; anyone can then
submit the signature to set the allowance. The signed digest is bound to
one ledger instance by a domain separator, so a signature for one ledger
(or one chain, or one version) is useless on another.

Accounts that use permits are Ed25519 verify keys in hex, the same
convention PyNaCl-based wallets use for addresses. Verification sits
behind the AuthorizationVerifier protocol so another scheme can be
plugged in.
"""

import hashlib
import json
from typing import Protocol

from nacl.encoding import HexEncoder
from nacl.exceptions import CryptoError
from nacl.signing import SigningKey, VerifyKey

from ubi_ledger.kernel.parameters import LedgerParameters

PERMIT_TYPE = "Permit(owner,spender,value,nonce,deadline)"
DOMAIN_TYPE = "Domain(name,version,chain_id,contract_address)"
DIGEST_PREFIX = b"\x19\x01"


def _hash_fields(type_name: str, *fields: object) -> bytes:
    """SHA-256 over a canonical JSON encoding of a typed tuple"""
    encoded = json.dumps([type_name, *fields], separators=(",", ":"), ensure_ascii=True)
    return hashlib.sha256(encoded.encode("utf-8")).digest()


def domain_separator(parameters: LedgerParameters) -> bytes:
    """Domain-separation value derived from (name, version, chain id, contract)"""
    return _hash_fields(
        DOMAIN_TYPE,
        parameters.name,
        parameters.version,
        parameters.chain_id,
        parameters.contract_address,
    )


def permit_digest(
    separator: bytes,
    owner: str,
    spender: str,
    value: int,
    nonce: int,
    deadline: int,
) -> bytes:
    """The 32-byte message an owner signs to authorize a permit"""
    struct_hash = _hash_fields(PERMIT_TYPE, owner, spender, str(value), nonce, deadline)
    return hashlib.sha256(DIGEST_PREFIX + separator + struct_hash).digest()


class AuthorizationVerifier(Protocol):
    """Decides whether `signature` over `digest` was produced by `owner`"""

    def verify(self, owner: str, digest: bytes, signature: str) -> bool:
        ...


class Ed25519AuthorizationVerifier:
    """Verifier for owners identified by hex-encoded Ed25519 verify keys"""

    def verify(self, owner: str, digest: bytes, signature: str) -> bool:
        try:
            verify_key = VerifyKey(owner.encode("ascii"), encoder=HexEncoder)
            verify_key.verify(digest, bytes.fromhex(signature))
        except (CryptoError, ValueError, TypeError):
            # Malformed keys and signatures are as invalid as wrong ones
            return False
        return True


def generate_keypair() -> tuple[str, str]:
    """
    Generate a new Ed25519 keypair.

    Returns:
        Tuple of (account_hex, secret_key_hex)
    """
    signing_key = SigningKey.generate()
    account = signing_key.verify_key.encode(encoder=HexEncoder).decode("ascii")
    secret_key = signing_key.encode(encoder=HexEncoder).decode("ascii")
    return account, secret_key


def sign_permit(
    secret_key: str,
    parameters: LedgerParameters,
    spender: str,
    value: int,
    nonce: int,
    deadline: int,
) -> tuple[str, str]:
    """
    Sign a permit for the owner holding `secret_key`

    Args:
        secret_key: Owner's Ed25519 secret key (hex)
        parameters: Parameters of the ledger the permit is for
        spender: Account to authorize
        value: Allowance to set
        nonce: Owner's current nonce on that ledger
        deadline: Last second at which the permit may be submitted

    Returns:
        Tuple of (owner_account_hex, signature_hex)

    Example:
        >>> owner, secret = generate_keypair()
        >>> _, signature = sign_permit(secret, params, "bob", 100, 0, deadline)
        >>> ledger.permit(owner, "bob", 100, deadline, signature, caller="relayer")
    """
    signing_key = SigningKey(secret_key.encode("ascii"), encoder=HexEncoder)
    owner = signing_key.verify_key.encode(encoder=HexEncoder).decode("ascii")
    digest = permit_digest(domain_separator(parameters), owner, spender, value, nonce, deadline)
    signature = signing_key.sign(digest).signature.hex()
    return owner, signature
