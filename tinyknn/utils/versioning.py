import hashlib
from typing import Union

SUPPORTED_HASH_ALGORITHMS = ("md5", "sha1", "sha256")

def calculate_content_hash(content: Union[str, bytes], algorithm: str = "md5") -> str:
    if algorithm not in SUPPORTED_HASH_ALGORITHMS:
        raise ValueError(f"Unsupported hash algorithm: {algorithm}")
    hash_obj = hashlib.new(algorithm)
    if isinstance(content, str):
        content_bytes = content.encode('utf-8')
    else:
        content_bytes = content
    hash_obj.update(content_bytes)
    return hash_obj.hexdigest()

def verify_content_hash(content: Union[str, bytes], expected: str, algorithm: str = "md5") -> bool:
    return calculate_content_hash(content, algorithm) == expected
