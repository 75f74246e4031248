# keying.py
import hashlib

KEY_SALT = "xpgraph-v1"


def compute_graph_key(name: str, algorithm: str, xp_max: int, fmt: str) -> str:
    """
    key = sha256(
      KEY_SALT | name | xp_max | format | algorithm
    ).hexdigest()

    Same query -> same image bytes, so the key doubles as the ETag.
    """
    prefix = f"{KEY_SALT}|{name}|{xp_max}|{fmt}|".encode("utf-8")
    h = hashlib.sha256()
    h.update(prefix)
    h.update(algorithm.encode("utf-8"))
    return h.hexdigest()
