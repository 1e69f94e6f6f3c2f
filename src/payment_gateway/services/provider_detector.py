"""Detects the originating provider from a transaction reference prefix."""

DEFAULT_REFERENCE_PREFIXES = {
    "PAYSTACK": "paystack",
    "FLW": "flutterwave",
    "MON": "monnify",
    "STRIPE": "stripe",
    "PAYPAL": "paypal",
    "MOCK": "mock",
}


class ProviderDetector:
    """
    Maps reference prefixes (``PAYSTACK_…``, ``FLW_…``) to provider keys.

    References generated by the built-in drivers carry these prefixes, which
    lets verification go straight to the right provider.
    """

    def __init__(self, prefixes: dict[str, str] | None = None) -> None:
        self._prefixes = dict(DEFAULT_REFERENCE_PREFIXES)
        if prefixes:
            for prefix, provider in prefixes.items():
                self.register_prefix(prefix, provider)

    def detect_from_reference(self, reference: str) -> str | None:
        upper_reference = reference.upper()
        for prefix, provider in self._prefixes.items():
            if upper_reference.startswith(f"{prefix}_"):
                return provider
        return None

    def register_prefix(self, prefix: str, provider: str) -> "ProviderDetector":
        self._prefixes[prefix.upper()] = provider
        return self

    def get_prefixes(self) -> dict[str, str]:
        return dict(self._prefixes)
