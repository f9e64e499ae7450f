import logging
from datetime import datetime, timezone
from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError
from app.config import config

logger = logging.getLogger(__name__)

class SlackService:
    def __init__(self, token: str = None, channel: str = None, mentions: str = None, client: WebClient = None):
        self.token = token or config.SLACK_BOT_TOKEN
        self.status_channel = channel or config.SLACK_CHANNEL_JOB_STATUS
        self.client = client or (WebClient(token=self.token) if self.token else None)

        # Format mentions: <@U123>, <@U456>
        raw_mentions = mentions if mentions is not None else (config.SLACK_MENTIONS or "")
        self.mentions = " ".join([f"<@{m.strip()}>" for m in raw_mentions.split(",") if m.strip()])

        if not self.client:
            logger.info("SLACK_BOT_TOKEN not provided. Slack job notifications are disabled.")

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def _get_timestamp_block(self):
        now = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
        return {
            "type": "context",
            "elements": [{"type": "mrkdwn", "text": f"🕒 *Time:* {now}"}]
        }

    def send_job_status(self, title: str, status: str, message: str, statistics: dict = None):
        """
        Sends a job status notification to the status channel.
        """
        blocks = [
            {
                "type": "header",
                "text": {"type": "plain_text", "text": title, "emoji": True}
            },
            {
                "type": "section",
                "text": {"type": "mrkdwn", "text": f"*Status:* {status}\n*Message:* {message}"}
            }
        ]

        if statistics:
            blocks.append({
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*Total:* {statistics.get('total', 0)}"},
                    {"type": "mrkdwn", "text": f"*Successful:* {statistics.get('successful', 0)}"},
                    {"type": "mrkdwn", "text": f"*Partial:* {statistics.get('partial', 0)}"},
                    {"type": "mrkdwn", "text": f"*Failed:* {statistics.get('failed', 0)}"},
                ]
            })

        needs_attention = status.lower() == "failed" or (statistics or {}).get("failed")
        if needs_attention and self.mentions:
            blocks.append({
                "type": "section",
                "text": {"type": "mrkdwn", "text": f"🚨 Attention: {self.mentions}"}
            })

        blocks.append(self._get_timestamp_block())
        return self._send_blocks(self.status_channel, blocks, f"{title}: {status}")

    def _send_blocks(self, channel: str, blocks: list, fallback_text: str):
        if not self.client:
            return None

        try:
            response = self.client.chat_postMessage(channel=channel, blocks=blocks, text=fallback_text)
            logger.info(f"Slack blocks sent successfully to {channel}")
            return response
        except SlackApiError as e:
            logger.error(f"Error sending Slack blocks to {channel}: {e.response['error']}")
            return None

slack_service = SlackService()
