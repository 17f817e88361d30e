"""Render service descriptors from Jinja2 templates.

Three filters are available to every template:

* ``cmd`` wraps a token in double quotes so it survives shell (and systemd
  ``ExecStart``) word splitting: ``value with spaces`` -> ``"value with spaces"``.
* ``cmd_nested`` is ``cmd`` escaped once more, for tokens placed inside a
  double-quoted shell string that is later re-parsed with ``eval``, such as
  OpenRC's ``command_args``.
* ``cmd_escape`` replaces spaces with ``\\x20`` for places where quotes are
  not allowed, such as systemd's ``ConditionFileIsExecutable``.
"""

from typing import Any, TextIO

from jinja2 import Environment, StrictUndefined

from polyinit.daemon.errors import TemplateRenderError

_DQUOTE_SPECIAL = ("\\", '"', "$", "`")


def cmd(value: Any) -> str:
    text = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{text}"'


def cmd_nested(value: Any) -> str:
    # The inner token must not expand when eval re-parses it
    token = cmd(value).replace("$", "\\$").replace("`", "\\`")
    # Backslash first so the escapes added below are not doubled
    for char in _DQUOTE_SPECIAL:
        token = token.replace(char, "\\" + char)
    return token


def cmd_escape(value: Any) -> str:
    return str(value).replace(" ", "\\x20")


def _environment() -> Environment:
    env = Environment(
        autoescape=False,
        undefined=StrictUndefined,
        keep_trailing_newline=True,
        trim_blocks=True,
    )
    env.filters["cmd"] = cmd
    env.filters["cmd_nested"] = cmd_nested
    env.filters["cmd_escape"] = cmd_escape
    return env


_ENV = _environment()


def render(source: str, context: dict[str, Any]) -> str:
    """Render *source* with *context*; raise TemplateRenderError on any failure.

    Runtime errors from an operator override (``{{ 1 / 0 }}``) are wrapped too.
    """
    try:
        return _ENV.from_string(source).render(context)
    except Exception as e:
        raise TemplateRenderError(f"failed to render service template: {e}") from e


def render_to(stream: TextIO, source: str, context: dict[str, Any]) -> None:
    """Stream the rendered template into *stream*.

    Output already written is left in place when rendering fails midway.
    """
    try:
        _ENV.from_string(source).stream(context).dump(stream)
    # Write failures on the descriptor propagate unchanged
    except OSError:
        raise
    except Exception as e:
        raise TemplateRenderError(f"failed to render service template: {e}") from e
