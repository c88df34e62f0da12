"""Notification creation and delivery."""
from alerts.gate import AlertGate
from alerts.channels import AlertChannel, ConsoleChannel, FileChannel, build_channels
from alerts.telegram_channel import TelegramChannel
