"""
Server-rendered HTML for the login, failure and chat surfaces.
"""

from __future__ import annotations

import html
from string import Template
from typing import Optional

from backend.web import Redirect
from chat.identity import display_label, resolve_avatar
from chat.render import css_url
from shared.types import Identity

_LAYOUT = Template(
    """<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>$title</title>
$head
</head>
<body>
$body
</body>
</html>
"""
)

_LOGIN_BODY = Template(
    """<main class="login">
  <form id="email-login-form" method="post" action="/login">
    <input id="email" name="email" type="email" placeholder="Email" $email_error>
    <input id="password" name="password" type="password" placeholder="Password" $password_error>
    <button type="submit">Sign in</button>
    <button id="reset-link" type="submit" formaction="/login/reset" formnovalidate>Forgot your password?</button>
  </form>
  <p id="message" role="alert">$message</p>
</main>"""
)

_FAILURE_BODY = Template(
    """<main class="login-failed">
  <h1>Sign-in failed</h1>
  <p><a href="$login_url">Back to sign in</a></p>
</main>"""
)

_CHAT_BODY = Template(
    """<header>
  <div id="user-pic" style="background-image: $user_pic"></div>
  <div id="user-name">$user_name</div>
  <form method="post" action="/chat/sign-out"><button id="sign-out" type="submit">Sign out</button></form>
</header>
<main>
  <div id="messages"></div>
  <form id="message-form">
    <input id="message" autocomplete="off" placeholder="Message...">
    <button id="submit" type="submit" disabled>Send</button>
  </form>
  <div id="must-signin-snackbar" role="status" hidden></div>
</main>
<script>
const list = document.getElementById('messages');
const input = document.getElementById('message');
const button = document.getElementById('submit');
const snackbar = document.getElementById('must-signin-snackbar');
function toggleButton() { button.disabled = !input.value; }
input.addEventListener('keyup', toggleButton);
input.addEventListener('change', toggleButton);
document.getElementById('message-form').addEventListener('submit', async (e) => {
  e.preventDefault();
  const text = input.value;
  if (!text) return;
  input.value = '';
  toggleButton();
  const resp = await fetch('/api/messages', {
    method: 'POST',
    headers: {'Content-Type': 'application/json'},
    body: JSON.stringify({text: text}),
  });
  if (resp.status === 401) {
    snackbar.textContent = (await resp.json()).detail;
    snackbar.hidden = false;
    setTimeout(() => { snackbar.hidden = true; }, 2000);
  }
});
new EventSource('/chat/stream').addEventListener('patch', (e) => {
  const patch = JSON.parse(e.data);
  if (patch.op === 'scroll') {
    list.scrollTop = list.scrollHeight;
    input.focus();
    return;
  }
  const tpl = document.createElement('template');
  tpl.innerHTML = patch.html;
  const existing = document.getElementById(patch.id);
  if (existing) existing.replaceWith(tpl.content.firstChild);
  else list.appendChild(tpl.content.firstChild);
});
</script>"""
)


def _page(title: str, body: str, head: str = "") -> str:
    return _LAYOUT.substitute(title=html.escape(title), head=head, body=body)


def login_page(
    message: str = "",
    field: Optional[str] = None,
    refresh: Optional[Redirect] = None,
) -> str:
    head = ""
    if refresh:
        head = '<meta http-equiv="refresh" content="%s;url=%s">' % (
            f"{refresh.delay:g}",
            html.escape(refresh.url, quote=True),
        )
    body = _LOGIN_BODY.substitute(
        message=html.escape(message),
        email_error='aria-invalid="true"' if field == "email" else "",
        password_error='aria-invalid="true"' if field == "password" else "",
    )
    return _page("Sign in", body, head)


def failure_page(login_url: str) -> str:
    return _page(
        "Sign-in failed",
        _FAILURE_BODY.substitute(login_url=html.escape(login_url, quote=True)),
    )


def chat_page(identity: Identity, default_avatar: str) -> str:
    body = _CHAT_BODY.substitute(
        user_pic=css_url(resolve_avatar(identity, default_avatar)),
        user_name=html.escape(display_label(identity)),
    )
    return _page("Easy Chat", body)
