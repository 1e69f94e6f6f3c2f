"""
Status normalization for provider-specific payment statuses.

Every provider reports payment state in its own vocabulary (Paystack
"success", Flutterwave "successful", Stripe "succeeded"/"requires_action").
StatusNormalizer reconciles them into a single PaymentStatus.

Lookup order for ``normalize(status, provider)``:
1. Provider-specific mapping registered for ``provider``
2. Global default table (DEFAULT_STATUS_MAPPINGS)
3. PaymentStatus.UNKNOWN

Normalization never raises; unrecognized tokens degrade to UNKNOWN.
"""

from collections.abc import Iterable, Mapping

import structlog

from payment_gateway.models.status import PaymentStatus

logger = structlog.get_logger(__name__)

# Shared by managed instances and the static fallback path, so both agree
# on every token. Tokens are stored upper-cased.
DEFAULT_STATUS_MAPPINGS: dict[PaymentStatus, frozenset[str]] = {
    PaymentStatus.SUCCESS: frozenset(
        {"SUCCESS", "SUCCEEDED", "COMPLETED", "SUCCESSFUL", "PAID", "OVERPAID", "CAPTURED"}
    ),
    PaymentStatus.FAILED: frozenset(
        {"FAILED", "REJECTED", "CANCELLED", "CANCELED", "DECLINED", "DENIED", "VOIDED", "EXPIRED"}
    ),
    PaymentStatus.PENDING: frozenset(
        {
            "PENDING",
            "PROCESSING",
            "PARTIALLY_PAID",
            "CREATED",
            "SAVED",
            "APPROVED",
            "PAYER_ACTION_REQUIRED",
            "REQUIRES_ACTION",
            "REQUIRES_PAYMENT_METHOD",
            "REQUIRES_CONFIRMATION",
        }
    ),
}


def _fold(status: str) -> str:
    return str(status).strip().upper()


def _index(mappings: Mapping[PaymentStatus, Iterable[str]]) -> dict[str, PaymentStatus]:
    return {token: outcome for outcome, tokens in mappings.items() for token in tokens}


_DEFAULT_INDEX = _index(DEFAULT_STATUS_MAPPINGS)


class StatusNormalizer:
    """
    Converts provider-specific statuses to canonical PaymentStatus values.

    Can be used as a shared, long-lived instance (see get_status_normalizer)
    with provider-specific mappings registered at startup, or statically via
    ``normalize_static`` when no shared instance is reachable.
    """

    def __init__(self) -> None:
        self._provider_mappings: dict[str, dict[PaymentStatus, list[str]]] = {}
        self._provider_index: dict[str, dict[str, PaymentStatus]] = {}

    def normalize(self, status: str, provider: str | None = None) -> PaymentStatus:
        """
        Normalize a raw provider status.

        Args:
            status: Raw status string from the provider
            provider: Optional provider key for provider-specific mappings

        Returns:
            Canonical PaymentStatus (UNKNOWN if the token is not recognized)
        """
        token = _fold(status)

        if provider is not None:
            outcome = self._provider_index.get(provider, {}).get(token)
            if outcome is not None:
                return outcome

        return _DEFAULT_INDEX.get(token, PaymentStatus.UNKNOWN)

    def register_provider_mappings(
        self,
        provider: str,
        mappings: Mapping[PaymentStatus | str, Iterable[str]],
    ) -> "StatusNormalizer":
        """
        Merge provider-specific status mappings.

        Tokens are appended to any already registered for the same outcome;
        nothing previously registered is dropped.

        Args:
            provider: Provider key (e.g., "paystack", "stripe")
            mappings: {outcome: [raw tokens]}

        Returns:
            self, for chaining

        Raises:
            ValueError: If an outcome name is not a PaymentStatus, or a token
                        is already mapped to a different outcome for this provider
        """
        index = dict(self._provider_index.get(provider, {}))
        merged = {
            outcome: list(tokens)
            for outcome, tokens in self._provider_mappings.get(provider, {}).items()
        }

        for raw_outcome, tokens in mappings.items():
            outcome = PaymentStatus.try_from(str(getattr(raw_outcome, "value", raw_outcome)))
            if outcome is None:
                raise ValueError(
                    f"Unknown payment status [{raw_outcome}] for provider [{provider}]"
                )
            if isinstance(tokens, str):
                tokens = [tokens]

            bucket = merged.setdefault(outcome, [])
            for raw_token in tokens:
                token = _fold(raw_token)
                existing = index.get(token)
                if existing is not None and existing is not outcome:
                    raise ValueError(
                        f"Status [{token}] already maps to [{existing.value}] "
                        f"for provider [{provider}]"
                    )
                if token not in bucket:
                    bucket.append(token)
                index[token] = outcome

        # Swap in complete maps so readers never see a half-merged state
        self._provider_mappings[provider] = merged
        self._provider_index[provider] = index

        logger.debug(
            "status_mappings_registered",
            provider=provider,
            tokens=len(index),
        )
        return self

    def get_provider_mappings(self) -> dict[str, dict[PaymentStatus, list[str]]]:
        return {
            provider: {outcome: list(tokens) for outcome, tokens in mapping.items()}
            for provider, mapping in self._provider_mappings.items()
        }

    def get_default_mappings(self) -> dict[PaymentStatus, list[str]]:
        return {outcome: sorted(tokens) for outcome, tokens in DEFAULT_STATUS_MAPPINGS.items()}

    @staticmethod
    def normalize_static(status: str) -> PaymentStatus:
        """Normalize using the default table only (no provider mappings)."""
        return _DEFAULT_INDEX.get(_fold(status), PaymentStatus.UNKNOWN)


_shared_normalizer: StatusNormalizer | None = None


def get_status_normalizer() -> StatusNormalizer:
    """Process-wide normalizer that built-in drivers register their vocabularies on."""
    global _shared_normalizer
    if _shared_normalizer is None:
        _shared_normalizer = StatusNormalizer()
    return _shared_normalizer
