"""Emission key construction.

A key is the dotted metric name, followed by the tag values as Zabbix item
key parameters when the metric has tags::

    http.request.latency["localhost","GET"]

Values are ordered by tag name so the same tag values always produce the
same key, whatever order the metadata mapping had.
"""

from typing import Any, Mapping, Tuple

from telemetry_zabbix.domain.definitions import Metadata, MetricDefinition

PARAM_SEPARATOR = ","


def stable_tag_pairs(tags: Mapping[str, Any]) -> Tuple[Tuple[str, Any], ...]:
    return tuple(sorted(tags.items(), key=lambda pair: str(pair[0])))


def quote_param(value: Any) -> str:
    text = "" if value is None else str(value)
    return '"' + text.replace('"', '\\"') + '"'


def format_key(prefix: str, tags: Mapping[str, Any]) -> str:
    if not tags:
        return prefix
    params = PARAM_SEPARATOR.join(quote_param(v) for _, v in stable_tag_pairs(tags))
    return f"{prefix}[{params}]"


def build_key(definition: MetricDefinition, metadata: Metadata) -> str:
    return format_key(definition.key_prefix, definition.resolve_tags(metadata))
