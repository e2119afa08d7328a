"""
Number formats produced by the sequence RPCs.
The store owns the counters; this module owns how a counter value is rendered.
"""

# ── RPC names understood by every RecordStore ──
RPC_NEXT_POLICY_NUMBER = "generate_next_policy_number"
RPC_NEXT_FORM_NUMBER = "generate_next_form_number"
RPC_NEXT_REVISION_NUMBER = "get_next_revision_number"

POLICY_TYPE_PREFIXES = {
    "RP": "RP",
    "HR": "HR",
    "S": "S",
    "Admin": "ADM",
    "Finance": "FIN",
    "OTHER": "OTH",
}
POLICY_TYPES = tuple(POLICY_TYPE_PREFIXES)


def policy_prefix(policy_type: str) -> str:
    try:
        return POLICY_TYPE_PREFIXES[policy_type]
    except KeyError:
        raise ValueError(
            f"Unknown policy type '{policy_type}'. Allowed: {', '.join(POLICY_TYPES)}"
        ) from None


def policy_sequence_key(policy_type: str) -> str:
    return f"policy:{policy_prefix(policy_type)}"


def form_sequence_key(form_type: str) -> str:
    return f"form:{form_type.strip().upper()}"


def revision_sequence_key(policy_id) -> str:
    return f"revision:{policy_id}"


def format_policy_number(policy_type: str, value: int) -> str:
    return f"{policy_prefix(policy_type)}-{value:03d}"


def format_form_number(form_type: str, value: int) -> str:
    return f"F-{form_type.strip().upper()}-{value:03d}"
