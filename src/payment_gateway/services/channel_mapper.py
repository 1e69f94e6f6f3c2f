"""Maps unified payment channels to provider-specific channel names."""

from enum import Enum


class PaymentChannel(str, Enum):
    """Provider-neutral payment channels accepted by ``Payment.channels()``."""

    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    USSD = "ussd"
    MOBILE_MONEY = "mobile_money"
    QR_CODE = "qr_code"


# provider -> (unified -> provider channel, accepted provider channels or None for any)
_PROVIDER_CHANNELS: dict[str, tuple[dict[str, str], frozenset[str] | None]] = {
    "paystack": (
        {
            PaymentChannel.CARD.value: "card",
            PaymentChannel.BANK_TRANSFER.value: "bank_transfer",
            PaymentChannel.USSD.value: "ussd",
            PaymentChannel.MOBILE_MONEY.value: "mobile_money",
            PaymentChannel.QR_CODE.value: "qr",
        },
        None,
    ),
    "flutterwave": (
        {
            PaymentChannel.CARD.value: "card",
            PaymentChannel.BANK_TRANSFER.value: "banktransfer",
            PaymentChannel.USSD.value: "ussd",
            PaymentChannel.MOBILE_MONEY.value: "mobilemoneyghana",
            PaymentChannel.QR_CODE.value: "nqr",
        },
        frozenset(
            {
                "card", "account", "banktransfer", "ussd", "mpesa",
                "mobilemoneyghana", "mobilemoneyfranco", "mobilemoneyuganda",
                "mobilemoneyrwanda", "mobilemoneyzambia", "mobilemoneytanzania",
                "nqr", "barter", "credit", "opay",
            }
        ),
    ),
    "stripe": (
        {
            PaymentChannel.CARD.value: "card",
            PaymentChannel.BANK_TRANSFER.value: "us_bank_account",
        },
        frozenset({"card", "us_bank_account", "link", "affirm", "klarna", "cashapp", "paypal"}),
    ),
    "monnify": (
        {
            PaymentChannel.CARD.value: "CARD",
            PaymentChannel.BANK_TRANSFER.value: "ACCOUNT_TRANSFER",
            PaymentChannel.USSD.value: "USSD",
            PaymentChannel.MOBILE_MONEY.value: "PHONE_NUMBER",
            "account_transfer": "ACCOUNT_TRANSFER",
            "phone_number": "PHONE_NUMBER",
        },
        frozenset({"CARD", "ACCOUNT_TRANSFER", "USSD", "PHONE_NUMBER"}),
    ),
}

# Providers that pick the payment method on their own checkout page
_CHANNELLESS_PROVIDERS = frozenset({"paypal"})


class ChannelMapper:
    """
    Translates unified channels into each provider's vocabulary.

    Channels a provider does not accept are dropped. PayPal takes no
    channel list at all. Other providers without a mapping get the channels
    back unchanged, so custom drivers can use their own names directly.
    """

    def supports_channels(self, provider: str) -> bool:
        return provider in _PROVIDER_CHANNELS

    def map_channels(self, channels: list[str] | None, provider: str) -> list[str] | None:
        if not channels or provider in _CHANNELLESS_PROVIDERS:
            return None

        if provider not in _PROVIDER_CHANNELS:
            return list(channels)

        mapping, accepted = _PROVIDER_CHANNELS[provider]
        mapped: list[str] = []
        for channel in channels:
            key = str(channel).strip().lower()
            value = mapping.get(key, key)
            if accepted is not None and value not in accepted:
                continue
            if value not in mapped:
                mapped.append(value)

        return mapped
