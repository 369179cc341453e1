# Slack integration module
from pinkeeper.integrations.slack.client import SlackGateway
from pinkeeper.integrations.slack.parser import decode_socket_frame, parse_permalink

__all__ = ["SlackGateway", "decode_socket_frame", "parse_permalink"]
