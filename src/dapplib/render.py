"""
HTML rendering of result envelopes.

Column formatters are dispatched through a static ``FormatterKind`` table.
Every copyable value is marked ``copy-target`` and followed by a clipboard
icon carrying ``data-copy`` for the page's clipboard wiring.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Mapping, Optional, Sequence

from .config import IpfsConfig
from .envelope import Formatter, FormatterKind, ResultEnvelope, ResultType
from .utils import get_transaction_hash, to_condensed

CLIPPY_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="14" height="16" viewBox="0 0 14 16" '
    'class="clippy" style="cursor:pointer;"><path fill-rule="evenodd" d="M2 13h4v1H2v-1zm5-6H2v1h5V7zm2 '
    '3V8l-3 3 3 3v-2h5v-2H9zM4.5 9H2v1h2.5V9zM2 12h2.5v-1H2v1zm9 1h1v2c-.02.28-.11.52-.3.7-.19.18-.42.28-.7'
    '.3H1c-.55 0-1-.45-1-1V4c0-.55.45-1 1-1h3c0-1.11.89-2 2-2 1.11 0 2 .89 2 2h3c.55 0 1 .45 1 1v5h-1V6H1v9h'
    '10v-2zM2 5h8c0-.55-.45-1-1-1H8c-.55 0-1-.45-1-1s-.45-1-1-1-1 .45-1 1-.45 1-1 1H3c-.55 0-1 .45-1 1z"/></svg>'
)

DISMISS_MARKUP = (
    '<div class="float-right" onclick="this.parentNode.parentNode.removeChild(this.parentNode)" '
    'title="Dismiss" style="cursor:pointer;">X</div>'
)

_NUMERIC_KEY = re.compile(r"^\d+$")
_ENVELOPE_FIELDS = frozenset(f.name for f in fields(ResultEnvelope))

IPFS_COLUMNS = (("TxHash", "IpfsHash", "Text-10-5"), ("Transaction", "IPFS URL", "Doc Id"), ("transactionHash", "ipfsHash", "docId"))
SIA_COLUMNS = (("TxHash", "SiaHash", "Text-10-5"), ("Transaction", "Sia URL", "Doc Id"), ("transactionHash", "docId", "docId"))


def _attr(value: Any) -> str:
    return html.escape(str(value), quote=True)


def add_clippy(data: Any) -> str:
    return CLIPPY_SVG.replace("<svg ", f'<svg data-copy="{_attr(data)}" ', 1)


def format_hint(hint: Optional[str]) -> str:
    if not hint:
        return ""
    return f'<p class="mt-3 grey-text"><strong>Hint:</strong> {html.escape(hint)}</p>'


def format_number(value: Any) -> str:
    text = str(value)
    whole, dot, fraction = text.partition(".")
    sign = "-" if whole.startswith("-") else ""
    digits = whole.lstrip("-")
    grouped = f"{int(digits):,}" if digits.isdigit() else digits
    return (
        f'<strong class="p-1 blue-grey-text number copy-target" style="font-size:1.1rem;" '
        f'title="{_attr(value)}">{sign}{grouped}{dot}{fraction}</strong>'
    )


def format_account(address: Any) -> str:
    text = str(address)
    return (
        f'<strong class="green accent-1 p-1 blue-grey-text number copy-target" title="{_attr(text)}">'
        f"{html.escape(to_condensed(text, 6, 4) or '')}</strong>{add_clippy(text)}"
    )


def format_tx_hash(tx: Any) -> str:
    value = get_transaction_hash(tx)
    return (
        f'<strong class="teal lighten-5 p-1 blue-grey-text number copy-target" title="{_attr(value)}">'
        f"{html.escape(to_condensed(value, 6, 4) or '')}</strong>{add_clippy(value)}"
    )


def format_boolean(value: Any) -> str:
    return "YES" if value else "NO"


def format_text(text: Any, copy_text: Any = None) -> str:
    if not text:
        return ""
    text = str(text)
    if text.startswith("<"):
        return text
    copy_value = copy_text if copy_text else text
    return f'<span class="copy-target" title="{_attr(copy_value)}">{html.escape(text)}</span>{add_clippy(copy_value)}'


def format_strong(text: Any) -> str:
    return f"<strong>{html.escape(str(text))}</strong>"


def format_plain(text: Any) -> str:
    return str(text)


@dataclass(frozen=True)
class HtmlRenderer:
    ipfs: IpfsConfig = field(default_factory=IpfsConfig)

    def format_ipfs_hash(self, cid: Any) -> str:
        cid = str(cid)
        url = _attr(self.ipfs.gateway_url(cid))
        return (
            f'<strong class="teal lighten-5 p-1 black-text number copy-target" title="{url}">'
            f'<a href="{url}" target="_new">{html.escape(to_condensed(cid, 6, 4) or "")}</a></strong>{add_clippy(cid)}'
        )

    def format_sia_hash(self, link: Any) -> str:
        link = str(link)
        return (
            f'<strong class="teal lighten-5 p-1 black-text number copy-target" title="{_attr(link)}">'
            f"{html.escape(to_condensed(link, 6, 4) or '')}</strong>{add_clippy(link)}"
        )

    def _cell(self, formatter: Formatter, text: str, copy_text: Any) -> str:
        handler = _CELL_FORMATTERS[formatter.kind]
        if formatter.kind is FormatterKind.TEXT and formatter.begin is not None:
            text = to_condensed(text, formatter.begin, formatter.end) or ""
        return handler(self, text, copy_text)

    def format_array(
        self,
        items: Sequence[Any],
        formatters: Sequence[str],
        labels: Optional[Sequence[str]] = None,
        keys: Optional[Sequence[str]] = None,
    ) -> str:
        parsed = [Formatter.parse(name) for name in formatters]
        output = ['<table class="table table-striped">']
        if labels:
            output.append("<thead><tr>")
            output.extend(f'<th scope="col">{html.escape(label)}</th>' for label in labels)
            output.append("</tr></thead>")
        output.append("<tbody>")
        for item in items:
            output.append("<tr>")
            for column, formatter in enumerate(parsed):
                value = item[keys[column]] if keys and keys[column] else item
                text = str(value)
                opening, closing = ('<th scope="row">', "</th>") if column == 0 else ("<td>", "</td>")
                cell = text if text.startswith("<") else self._cell(formatter, text, value)
                output.append(f"{opening}{cell}{closing}")
            output.append("</tr>")
        output.append("</tbody></table>")
        return "".join(output)

    def format_object(self, data: Mapping[str, Any]) -> str:
        rows = [
            {"item": key[:1].upper() + key[1:], "value": value}
            for key, value in data.items()
            if not _NUMERIC_KEY.match(str(key))
        ]
        return self.format_array(rows, ["Strong", "Text-20-5"], ["Item", "Value"], ["item", "value"])

    def format_result(self, envelope: ResultEnvelope, value: Any) -> str:
        kind = envelope.type
        if kind is ResultType.BIG_NUMBER:
            return format_number(value)
        if kind is ResultType.TRANSACTION_HASH:
            return format_tx_hash(value)
        if kind is ResultType.ACCOUNT:
            return format_account(value)
        if kind is ResultType.IPFS_HASH_ARRAY:
            return self.format_array(value, *IPFS_COLUMNS)
        if kind is ResultType.SIA_HASH_ARRAY:
            return self.format_array(value, *SIA_COLUMNS)
        if kind is ResultType.ARRAY:
            return self.format_array(value, envelope.formatter or ("Text",))
        if kind is ResultType.OBJECT:
            return self.format_object(value)
        if kind is ResultType.ERROR:
            return html.escape(str(value))
        raise AssertionError(f"Unhandled result type: {kind}")

    def render_result(self, envelope: ResultEnvelope, key: Optional[str] = None) -> str:
        """
        Render an envelope as a dismissable note.

        Args:
            envelope: The envelope to render
            key: Envelope field to display (default: ``result``)

        Raises:
            ValueError: If ``key`` is not a field of the envelope.
        """
        field_name = key if key and key != "null" else "result"
        if field_name not in _ENVELOPE_FIELDS:
            raise ValueError(f"Unknown envelope field: {field_name!r}")
        value = getattr(envelope, field_name)
        failed = envelope.is_error
        colour = "bg-red-400" if failed else "bg-green-400"
        icon = "☹️" if failed else "👍️"
        label = "Result" if isinstance(value, (list, tuple)) else envelope.label
        return (
            f'<div class="note {colour} m-3 p-3">{DISMISS_MARKUP}{icon} {html.escape(label)}: '
            f"{self.format_result(envelope, value)}{format_hint(envelope.hint)}</div>"
        )


_CELL_FORMATTERS: dict[FormatterKind, Callable[[HtmlRenderer, str, Any], str]] = {
    FormatterKind.NUMBER: lambda r, text, copy: format_number(text),
    FormatterKind.ACCOUNT: lambda r, text, copy: format_account(text),
    FormatterKind.TX_HASH: lambda r, text, copy: format_tx_hash(text),
    FormatterKind.IPFS_HASH: lambda r, text, copy: r.format_ipfs_hash(text),
    FormatterKind.SIA_HASH: lambda r, text, copy: r.format_sia_hash(text),
    FormatterKind.BOOLEAN: lambda r, text, copy: format_boolean(copy),
    FormatterKind.TEXT: lambda r, text, copy: format_text(text, copy),
    FormatterKind.STRONG: lambda r, text, copy: format_strong(text),
    FormatterKind.PLAIN: lambda r, text, copy: format_plain(text),
}
