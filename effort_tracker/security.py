import hmac, hashlib

def compute_secret_digest(pepper: str, secret: str) -> str:
    mac = hmac.new(pepper.encode('utf-8'), secret.encode('utf-8'), hashlib.sha256)
    return mac.hexdigest()

def digest_matches(pepper: str, secret: str, expected_hex: str) -> bool:
    return hmac.compare_digest(compute_secret_digest(pepper, secret), (expected_hex or "").lower())
