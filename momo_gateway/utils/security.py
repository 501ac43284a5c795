import hmac, hashlib
from typing import Optional

def hmac_sha256_hex(secret: str, payload: bytes) -> str:
    return hmac.new(secret.encode('utf-8'), payload, hashlib.sha256).hexdigest()

def verify_hmac_sha256_hex(secret: str, payload: bytes, signature: Optional[str]) -> bool:
    if not signature:
        return False
    # some providers prefix the digest with the algorithm name
    candidate = signature.strip()
    if candidate.lower().startswith("sha256="):
        candidate = candidate[len("sha256="):]
    return hmac.compare_digest(hmac_sha256_hex(secret, payload), candidate.lower())
