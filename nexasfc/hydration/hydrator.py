"""
NexaSFC Hydrator
================

Turns aggregated payloads into the markup that exposes them to client
code: a JSON data script plus a one-line loader assigning it to
``window.<name>``.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional

from nexasfc.errors import ValidationError
from nexasfc.security.xss import escape_attribute, is_js_identifier
from nexasfc.utils import serializer

DATA_ID_PREFIX = "nexa-data-"


def data_element_id(window: str) -> str:
    return f"{DATA_ID_PREFIX}{window}"


def nonce_attribute(nonce: Optional[str]) -> str:
    if not nonce:
        return ""
    return f' nonce="{escape_attribute(nonce)}"'


class Hydrator:
    """
    Builds hydration scripts.

    Example:
        Hydrator().build_markup("appData", {"user": "Ada"}, nonce="abc")
        # <script id="nexa-data-appData" type="application/json" ...>...</script>
        # <script nonce="abc">window.appData = JSON.parse(...);</script>
    """

    def build_markup(self, window: str, data: Any, nonce: Optional[str] = None) -> str:
        """
        Markup for one window attribute.

        Args:
            window: Global name the data is assigned to
            data: JSON-serializable payload
            nonce: CSP nonce added to both scripts

        Returns:
            Two ``<script>`` elements separated by a newline

        Raises:
            ValidationError: If ``window`` is not a JavaScript identifier
            HydrationError: If ``data`` cannot be serialized
        """
        if not is_js_identifier(window):
            raise ValidationError(f"Invalid window attribute name: {window!r}")

        element_id = data_element_id(window)
        payload = serializer.script_safe_dumps(data)
        nonce_attr = nonce_attribute(nonce)

        data_script = (
            f'<script id="{element_id}" type="application/json" '
            f'data-window="{window}"{nonce_attr}>{payload}</script>'
        )
        loader_script = (
            f"<script{nonce_attr}>window.{window} = "
            f"JSON.parse(document.getElementById('{element_id}').textContent);</script>"
        )
        return f"{data_script}\n{loader_script}"

    def build_all(self, payloads: Mapping[str, Any], nonce: Optional[str] = None) -> str:
        """Markup for every window, in mapping order."""
        blocks: List[str] = [
            self.build_markup(window, data, nonce) for window, data in payloads.items()
        ]
        return "\n".join(blocks)
