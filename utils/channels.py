"""Channel token normalization and display labels"""

from models import Channel

CHANNEL_ALIASES = {
    "hopqua": Channel.HOPQUA.value,
    "hq": Channel.HOPQUA.value,
    "hh": Channel.HOPQUA.value,
    "dabong": Channel.DABONG.value,
    "db": Channel.DABONG.value,
    "qr": Channel.QR.value,
}

CHANNEL_LABELS = {
    Channel.HOPQUA.value: "Hopqua",
    Channel.QR.value: "QR",
    Channel.DABONG.value: "Dabong",
}


def normalize_channel(token) -> str:
    """Map channel aliases to their code; unknown tokens pass through lower-cased"""
    t = str(token or "").strip().lower()
    return CHANNEL_ALIASES.get(t, t)


def channel_label(channel) -> str:
    code = normalize_channel(channel)
    return CHANNEL_LABELS.get(code, code.upper())
