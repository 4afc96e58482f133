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

import unittest

from chat.feed import FeedEntry, FeedState
from chat.render import (
    HtmlFeedView,
    PatchOp,
    css_url,
    render_entry,
    render_message_text,
)


class RenderMessageTextTest(unittest.TestCase):

    def test_script_renders_as_literal_text(self):
        rendered = render_message_text("<script>alert('x')</script>")
        self.assertNotIn("<script>", rendered)
        self.assertTrue(rendered.startswith("&lt;script&gt;"))

    def test_newlines_become_line_breaks(self):
        self.assertEqual(render_message_text("a\nb"), "a<br>b")

    def test_no_markup_is_interpreted(self):
        self.assertEqual(render_message_text("<br>"), "&lt;br&gt;")


class RenderEntryTest(unittest.TestCase):

    def test_escapes_author_and_avatar(self):
        entry = FeedEntry(
            id="m1",
            author="<b>eve</b>",
            body="hi",
            avatar_ref='x.png" onerror="alert(1)',
        )
        markup = render_entry(entry)
        self.assertIn("&lt;b&gt;eve&lt;/b&gt;", markup)
        self.assertNotIn('onerror="', markup)
        self.assertIn('id="m1"', markup)

    def test_avatar_url_is_quoted_in_css(self):
        markup = render_entry(
            FeedEntry(
                id="m1", author="bob", body="hi", avatar_ref="https://p/a b(1).png"
            )
        )
        self.assertIn(
            'style="background-image: url(&quot;https://p/a b(1).png&quot;)"',
            markup,
        )

    def test_css_url_escapes_quotes_and_newlines(self):
        self.assertEqual(
            css_url('a"b\nc'), 'url(&quot;a\\&quot;b\\a c&quot;)'
        )

    def test_omits_picture_without_avatar(self):
        markup = render_entry(FeedEntry(id="m1", author="bob", body="hi"))
        self.assertIn('<div class="pic"></div>', markup)

    def test_empty_author_renders_anonymous(self):
        markup = render_entry(FeedEntry(id="m1", author="", body="hi"))
        self.assertIn('<div class="name">anonymous</div>', markup)


class HtmlFeedViewTest(unittest.TestCase):

    def test_unchanged_state_only_scrolls(self):
        view = HtmlFeedView()
        state = FeedState((FeedEntry(id="a", author="x", body="1"),))
        view.render(state)
        view.render(state)
        self.assertEqual(
            [p.op for p in view.patches],
            [PatchOp.APPEND, PatchOp.SCROLL, PatchOp.SCROLL],
        )

    def test_empty_state_emits_nothing(self):
        view = HtmlFeedView()
        view.render(FeedState())
        self.assertEqual(view.patches, [])

    def test_changed_entry_is_replaced_in_place(self):
        view = HtmlFeedView()
        view.render(
            FeedState(
                (
                    FeedEntry(id="a", author="x", body="1"),
                    FeedEntry(id="b", author="x", body="2"),
                )
            )
        )
        view.render(
            FeedState(
                (
                    FeedEntry(id="a", author="x", body="changed"),
                    FeedEntry(id="b", author="x", body="2"),
                )
            )
        )
        self.assertEqual(view.order, ["a", "b"])
        self.assertEqual(view.patches[-2].op, PatchOp.REPLACE)
        self.assertEqual(view.patches[-2].node_id, "a")
        self.assertIn("changed", view.to_html())

    def test_sink_receives_patches(self):
        received = []
        view = HtmlFeedView(sink=received.append)
        view.render(FeedState((FeedEntry(id="a", author="x", body="1"),)))
        self.assertEqual(
            [p.as_dict()["op"] for p in received], ["append", "scroll"]
        )


if __name__ == "__main__":
    unittest.main()
