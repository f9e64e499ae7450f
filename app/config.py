import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    DATABASE_URL = os.getenv("DATABASE_URL")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_FORMAT = "[%(asctime)s] [%(process)d] [%(levelname)s] %(name)s: %(message)s"
    LOG_DATEFMT = "%Y-%m-%d %H:%M:%S %z"

    # Batch processing
    BATCH_SIZE = int(os.getenv("BATCH_SIZE", "10"))
    BATCH_DELAY_SECONDS = float(os.getenv("BATCH_DELAY_SECONDS", "0.5"))
    MAX_RETRIES = int(os.getenv("MAX_RETRIES", "3"))
    RETRY_DELAY_SECONDS = float(os.getenv("RETRY_DELAY_SECONDS", "1.0"))
    REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30"))
    RATE_LIMIT_PER_SECOND = int(os.getenv("RATE_LIMIT_PER_SECOND", "15"))

    # Jobs
    ASYNC_THRESHOLD = int(os.getenv("ASYNC_THRESHOLD", "50"))
    JOB_MAX_AGE_SECONDS = int(os.getenv("JOB_MAX_AGE_SECONDS", "3600"))
    JOB_SWEEP_SCHEDULE = os.getenv("JOB_SWEEP_SCHEDULE", "0 * * * *")
    SECONDS_PER_RECORD_ESTIMATE = 2

    # Uploads
    MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
    ALLOWED_EXTENSIONS = (".xlsx", ".xlsm")
    NOTES_COLUMN = "Space_Notes"

    SLACK_BOT_TOKEN = os.getenv("SLACK_BOT_TOKEN")
    SLACK_CHANNEL_JOB_STATUS = os.getenv("SLACK_CHANNEL_JOB_STATUS")
    SLACK_MENTIONS = os.getenv("SLACK_MENTIONS")

    # Links that are always turned into anchors in Space notes
    NOTES_COMMON_LINKS = [
        {"text": "here", "url": "https://community.unit4.com/t5/Success-Outcomes/bg-p/SuccessOutcomes"},
        {"text": "Community4U", "url": "https://community.unit4.com/"},
        {"text": "Success.Hub@Unit4.com", "url": "mailto:Success.Hub@Unit4.com"},
    ]

    INVITE_EMAIL_SUBJECT = "You're invited to join Spaces - Take Action to Access your Unit4 Success Plan and More!"
    BANNER_GRADIENT = "linear-gradient(180deg, #A2CF6B 0%, #F6F6F6 100%)"
    BANNER_COLOR = "#A2CF6B"

config = Config()
