import math
import unicodedata

def normalize_address(addr: str) -> str:
    """
    Minimal normalization so seeds and log lines are stable:
    - trim whitespace
    - lowercase
    - collapse multiple spaces
    """
    return " ".join(addr.strip().lower().split())

def fold_text(s: str) -> str:
    """Lowercase and strip accents, e.g. 'Très bon état' -> 'tres bon etat'."""
    decomposed = unicodedata.normalize("NFKD", s)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return normalize_address(stripped)

def fnv1a_32(s: str) -> int:
    """Deterministic, fast hash for seed generation."""
    h = 0x811c9dc5
    for c in s.encode("utf-8"):
        h ^= c
        h = (h * 0x01000193) & 0xFFFFFFFF
    return h

def seeded_rand(seed: int, n: int = 1) -> list[float]:
    """
    Stateless pseudo-random generator (Mulberry32-like) so
    same seed → same outputs without storing PRNG state.
    """
    out = []
    t = (seed + 0x6D2B79F5) & 0xFFFFFFFF
    for _ in range(n):
        t = (t ^ (t >> 15)) * (t | 1) & 0xFFFFFFFF
        t ^= t + ((t ^ (t >> 7)) * (t | 61) & 0xFFFFFFFF)
        r = ((t ^ (t >> 14)) & 0xFFFFFFFF) / 4294967296.0
        out.append(r)
    return out

CURRENCY_SYMBOLS = {"EUR": "€"}

def format_money(amount: float, currency: str = "EUR") -> str:
    """French-style rendering with a plain-space separator: 243000 -> '243 000 €'."""
    digits = f"{int(math.floor(amount + 0.5)):,}".replace(",", " ")
    return f"{digits} {CURRENCY_SYMBOLS.get(currency, currency)}"
