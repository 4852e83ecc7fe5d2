"""
Grouping keys for events.

Two key functions feed the aggregation engine:
- resolve_identity: best-effort customer key (customer id > cart > session)
- resolve_channel: normalized acquisition channel

The identity key changes meaning depending on which tier resolved it, so
a returning customer without a tracked ``customer_id`` is counted once per
cart or session. That approximation is intentional.
"""

import re

from checkout_analytics.events.models import EventRecord

DIRECT_CHANNEL = "direct"

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def resolve_identity(event: EventRecord) -> str:
    """Best available customer key for an event. Never empty."""
    return event.meta.customer_id_field() or event.order_form_id or event.session_id


def normalize_channel(label: str) -> str:
    """Lower-case and replace every non-alphanumeric character with '_'."""
    return _NON_ALNUM.sub("_", label.lower())


def resolve_channel(event: EventRecord) -> str:
    """Acquisition channel from utm_source, referrer or channel; 'direct' otherwise."""
    return normalize_channel(event.meta.channel_field() or DIRECT_CHANNEL)


def channel_display_name(channel: str) -> str:
    """'google_ads' -> 'Google ads'"""
    if not channel:
        return channel
    return channel[0].upper() + channel[1:].replace("_", " ")
