"""
Response Renderer

Collects the output of a DB Admin request and turns it into either a full
HTML page or, for AJAX requests, a JSON envelope:

    {
        "success": bool,
        "message": str,       // on success
        "error": str,         // instead of "message" on failure
        ...                   // keys added via add_json()
    }

Author: DSP Development Team
Version: 1.0.0
"""

from typing import Any, Dict, List, Optional

from django.conf import settings
from django.http import HttpResponse
from django.template.loader import render_to_string
from django.utils.safestring import mark_safe
from rest_framework import status
from rest_framework.response import Response

from .message import Message
from .request_params import is_filled


class ResponseRenderer:
    def __init__(self, request):
        self.request = request
        self._html: List[str] = []
        self._json: Dict[str, Any] = {}
        self._is_success = True
        self._status_code = status.HTTP_200_OK
        self._scripts: List[str] = []
        self.title = ""
        # Wird gesetzt, wenn die Antwort vollständig ist und keine weiteren
        # Schritte des Controllers mehr laufen dürfen
        self.is_finished = False

    def is_ajax(self) -> bool:
        params = getattr(self.request, "GET", {})
        post = getattr(self.request, "POST", {})
        if is_filled(post.get("ajax_request")) or is_filled(params.get("ajax_request")):
            return True
        return self.request.headers.get("X-Requested-With") == "XMLHttpRequest"

    def add_html(self, html: str) -> None:
        self._html.append(str(html))

    def add_json(self, key: str, value: Any) -> None:
        self._json[key] = value

    def get_json(self) -> Dict[str, Any]:
        return dict(self._json)

    def add_script_files(self, files: List[str]) -> None:
        for name in files:
            if name not in self._scripts:
                self._scripts.append(name)

    def set_request_status(self, success: bool, status_code: Optional[int] = None) -> None:
        self._is_success = success
        if status_code is not None:
            self._status_code = status_code
        elif not success and self._status_code == status.HTTP_200_OK:
            self._status_code = status.HTTP_400_BAD_REQUEST

    def is_success(self) -> bool:
        return self._is_success

    def finish(self) -> None:
        self.is_finished = True

    def render(self, template_name: str, context: Dict[str, Any]) -> None:
        self.add_html(render_to_string(template_name, context, request=self.request))

    def get_display(self) -> str:
        return "".join(self._html)

    def _ajax_payload(self) -> Dict[str, Any]:
        payload = dict(self._json)
        message = payload.get("message")
        if message is None:
            payload["message"] = self.get_display()
        elif isinstance(message, Message):
            payload["message"] = message.get_display()

        payload["success"] = self._is_success
        if not self._is_success:
            payload["error"] = payload.pop("message")
        return payload

    def to_response(self):
        if self.is_ajax():
            return Response(self._ajax_payload(), status=self._status_code)

        scripts = [settings.STATIC_URL + "db_admin/js/" + name for name in self._scripts]
        page = render_to_string(
            "db_admin/page.html",
            {
                "title": self.title or "DSP DB Admin",
                "content": mark_safe(self.get_display()),
                "scripts": scripts,
            },
            request=self.request,
        )
        return HttpResponse(page, status=self._status_code)
