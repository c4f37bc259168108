"""Balance-change notifications."""

from .email_sender import EmailNotifier, build_test_payload, render_html, render_text

__all__ = ["EmailNotifier", "build_test_payload", "render_html", "render_text"]
