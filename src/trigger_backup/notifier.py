from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from . import dependency

if TYPE_CHECKING:
    from .context import RunContext
    from .model import Model

LOG = logging.getLogger(__name__)


class SlackNotifier:
    """Posts run summaries to a Slack incoming webhook."""

    def __init__(self, webhook_url: str, timeout: int = 30) -> None:
        self._requests = dependency.load("requests")
        self._webhook_url = webhook_url
        self._timeout = timeout

    @staticmethod
    def build_message(model: "Model", context: "RunContext", success: bool, error: Optional[BaseException] = None) -> str:
        status = "succeeded" if success else "FAILED"
        lines = [f"Backup '{model.trigger}' {status} (started {context.timestamp})."]
        if model.description:
            lines.append(model.description)
        if error is not None:
            lines.append(f"Error: {error}")
        return "\n".join(lines)

    def send(self, text: str) -> bool:
        try:
            response = self._requests.post(self._webhook_url, json={"text": text}, timeout=self._timeout)
            response.raise_for_status()
        except self._requests.RequestException as exc:
            LOG.warning("Slack notification failed: %s", exc)
            return False
        return True


def notify(model: "Model", context: "RunContext", success: bool, error: Optional[BaseException] = None) -> bool:
    settings = model.config.notifications
    if not settings.slack_webhook_env:
        return False

    webhook_url = settings.resolve_slack_webhook()
    if not webhook_url:
        LOG.warning("Slack webhook variable %s is not set; skipping notification", settings.slack_webhook_env)
        return False

    notifier = SlackNotifier(webhook_url)
    return notifier.send(SlackNotifier.build_message(model, context, success, error))
