"""
Эвристики по строкам: распознавание страницы входа и поиск полей формы.

Сопоставление намеренно «свободное» (подстрока): ``/loginhelp`` тоже
считается страницей входа. Это принятое поведение, а не ошибка.
"""
from __future__ import annotations

import json
import re
from typing import Iterable, Mapping, Optional
from urllib.parse import urlsplit

from webshell.settings import Credential

LOGIN_MARKERS = ("/login", "/auth", "signin", "sign-in")

USER_HINT = re.compile(r"(user|username|login|email|benutzer)", re.IGNORECASE)
USER_TYPES = ("text", "email")
# эти поля никогда не бывают полем логина, даже если name="login_..."
NON_USER_TYPES = ("password", "hidden", "submit", "button", "checkbox", "radio", "image", "reset", "file")
# второй проход: первое текстовое поле или поле без type
FALLBACK_TYPES = USER_TYPES + ("",)

# статусы скрипта входа, после которых форма действительно отправлена
SCRIPT_OK_RESULTS = ("submitted", "clicked")


def is_login_url(url: Optional[str]) -> bool:
    if not url:
        return False
    try:
        parts = urlsplit(url)
        # фрагмент тоже смотрим: SPA-роутеры держат путь в #/login
        target = f"{parts.path}#{parts.fragment}"
    except ValueError:
        target = url
    target = target.lower()
    return any(marker in target for marker in LOGIN_MARKERS)


def _input_type(el: Mapping[str, str]) -> str:
    return (el.get("type") or "").lower()


def _looks_like_user(el: Mapping[str, str]) -> bool:
    t = _input_type(el)
    if t in NON_USER_TYPES:
        return False
    s = " ".join((el.get("name") or "", el.get("id") or "", el.get("placeholder") or ""))
    return bool(USER_HINT.search(s)) or t in USER_TYPES


def guess_username_field(inputs: Iterable[Mapping[str, str]]) -> Optional[Mapping[str, str]]:
    """First input that looks like a login field, else the first text/email/untyped one."""
    inputs = list(inputs)
    for el in inputs:
        if _looks_like_user(el):
            return el
    for el in inputs:
        if _input_type(el) in FALLBACK_TYPES:
            return el
    return None


def guess_password_field(inputs: Iterable[Mapping[str, str]]) -> Optional[Mapping[str, str]]:
    for el in inputs:
        if _input_type(el) == "password":
            return el
    return None


_LOGIN_JS = r"""
(() => {
  const USER = %(user)s;
  const PASS = %(password)s;
  const USER_HINT = /%(hint)s/i;
  const USER_TYPES = %(user_types)s;
  const NON_USER_TYPES = %(non_user_types)s;
  const FALLBACK_TYPES = %(fallback_types)s;

  const inputs = Array.from(document.querySelectorAll('input'));
  const typeOf = (el) => (el.getAttribute('type') || '').toLowerCase();
  const looksLikeUser = (el) => {
    const t = typeOf(el);
    if (NON_USER_TYPES.includes(t)) return false;
    const s = (el.name || '') + ' ' + (el.id || '') + ' ' + (el.placeholder || '');
    return USER_HINT.test(s) || USER_TYPES.includes(t);
  };

  const userInput = inputs.find(looksLikeUser)
    || inputs.find(el => FALLBACK_TYPES.includes(typeOf(el)));
  const passInput = inputs.find(el => typeOf(el) === 'password');
  if (!userInput && !passInput) return 'no-fields';

  const fill = (el, value) => {
    el.focus();
    el.value = value;
    el.dispatchEvent(new Event('input', { bubbles: true }));
    el.dispatchEvent(new Event('change', { bubbles: true }));
  };
  if (userInput) fill(userInput, USER);
  if (passInput) fill(passInput, PASS);

  const form = (passInput && passInput.form) || (userInput && userInput.form) || document.querySelector('form');
  if (form) {
    if (typeof form.requestSubmit === 'function') form.requestSubmit(); else form.submit();
    return 'submitted';
  }
  const btn = document.querySelector('button[type=submit], input[type=submit], button');
  if (btn) { btn.click(); return 'clicked'; }
  return 'no-submit';
})();
"""


def build_login_script(credential: Credential) -> str:
    # json.dumps экранирует кавычки и переводы строк в пароле
    return _LOGIN_JS % {
        "user": json.dumps(credential.user),
        "password": json.dumps(credential.password),
        "hint": USER_HINT.pattern,
        "user_types": json.dumps(list(USER_TYPES)),
        "non_user_types": json.dumps(list(NON_USER_TYPES)),
        "fallback_types": json.dumps(list(FALLBACK_TYPES)),
    }
