"""
User facing messages (error / success / notice boxes).

Author: DSP Development Team
Version: 1.0.0
"""

from typing import List

from django.utils.html import escape

LEVEL_ERROR = "error"
LEVEL_SUCCESS = "success"
LEVEL_NOTICE = "notice"

_ALERT_CLASSES = {
    LEVEL_ERROR: "alert-danger",
    LEVEL_SUCCESS: "alert-success",
    LEVEL_NOTICE: "alert-primary",
}


class Message:
    """
    Eine Meldung für die Oberfläche.

    Der Text wird als HTML behandelt: Benutzereingaben müssen vom Aufrufer
    escaped werden (oder über add_param angehängt werden).
    """

    def __init__(self, text: str = "", level: str = LEVEL_NOTICE):
        self.text = text
        self.level = level
        self.params: List[str] = []
        self._added: List[str] = []

    @classmethod
    def error(cls, text: str = "") -> "Message":
        return cls(text, LEVEL_ERROR)

    @classmethod
    def success(cls, text: str = "") -> "Message":
        return cls(text, LEVEL_SUCCESS)

    @classmethod
    def notice(cls, text: str = "") -> "Message":
        return cls(text, LEVEL_NOTICE)

    def add_param(self, value: str) -> None:
        """Parameter für einen %s-Platzhalter, wird escaped."""
        self.params.append(escape(value))

    def add_html(self, html: str) -> None:
        self._added.append(html)

    def is_success(self) -> bool:
        return self.level == LEVEL_SUCCESS

    def is_error(self) -> bool:
        return self.level == LEVEL_ERROR

    def get_message(self) -> str:
        message = self.text
        if self.params:
            message = message % tuple(self.params)
        return message + "".join(self._added)

    def get_display(self) -> str:
        return '<div class="alert %s" role="alert">%s</div>' % (
            _ALERT_CLASSES[self.level],
            self.get_message(),
        )

    def __str__(self) -> str:
        return self.get_message()


def format_sql(sql: str) -> str:
    return '<code class="sql" dir="ltr"><pre>' + escape(sql) + "</pre></code>"


def get_message_with_query(message: Message, sql_query: str = "") -> str:
    """Meldung plus (optional) die ausgeführte SQL-Abfrage darunter."""
    output = message.get_display()
    if sql_query:
        output += format_sql(sql_query)
    return output
