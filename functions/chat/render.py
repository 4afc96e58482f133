# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================
"""HTML rendering of the message feed."""

import html
from dataclasses import dataclass
from enum import StrEnum
from typing import Callable, Dict, List, Optional

from chat.feed import FeedEntry, FeedState
from shared.constants import ANONYMOUS_AUTHOR


class PatchOp(StrEnum):
    APPEND = "append"
    REPLACE = "replace"
    SCROLL = "scroll"


@dataclass(frozen=True)
class FeedPatch:
    """One change to the displayed list, as sent to a browser."""

    op: PatchOp
    node_id: Optional[str] = None
    html: str = ""

    def as_dict(self) -> dict:
        return {"op": self.op.value, "id": self.node_id, "html": self.html}


def render_message_text(text: str) -> str:
    """Escapes the text as plain text, then turns newlines into line breaks."""
    return html.escape(text or "").replace("\n", "<br>")


def css_url(url: str) -> str:
    """A quoted CSS `url(...)`, escaped for use inside an HTML attribute."""
    quoted = (
        url.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\a ")
        .replace("\r", "")
    )
    return html.escape('url("%s")' % quoted, quote=True)


def render_entry(entry: FeedEntry) -> str:
    pic_style = ""
    if entry.avatar_ref:
        pic_style = ' style="background-image: %s"' % css_url(entry.avatar_ref)
    return (
        '<div class="message-container visible" id="%s">'
        '<div class="spacing"><div class="pic"%s></div></div>'
        '<div class="message">%s</div>'
        '<div class="name">%s</div>'
        "</div>"
    ) % (
        html.escape(entry.id, quote=True),
        pic_style,
        render_message_text(entry.body),
        html.escape(entry.author or ANONYMOUS_AUTHOR),
    )


@dataclass
class RenderedNode:
    entry: FeedEntry
    html: str


class HtmlFeedView:
    """
    FeedView that diffs feed state against the nodes it has displayed.

    Missing nodes are appended at the end, changed nodes are replaced in
    place, and every upsert is followed by a scroll patch. A render that
    upserts only unchanged entries (a redelivery) still scrolls once.
    """

    def __init__(self, sink: Optional[Callable[[FeedPatch], None]] = None):
        self.nodes: Dict[str, RenderedNode] = {}
        self.patches: List[FeedPatch] = []
        self._sink = sink or self.patches.append

    def render(self, state: FeedState) -> None:
        changed = False
        for entry in state.entries:
            node = self.nodes.get(entry.id)
            if node is None:
                op = PatchOp.APPEND
            elif node.entry != entry:
                op = PatchOp.REPLACE
            else:
                continue
            markup = render_entry(entry)
            self.nodes[entry.id] = RenderedNode(entry=entry, html=markup)
            self._sink(FeedPatch(op=op, node_id=entry.id, html=markup))
            self._sink(FeedPatch(op=PatchOp.SCROLL))
            changed = True
        if not changed and state.entries:
            self._sink(FeedPatch(op=PatchOp.SCROLL))

    @property
    def order(self) -> List[str]:
        return list(self.nodes)

    def to_html(self) -> str:
        return "".join(node.html for node in self.nodes.values())
