from menubot.schemas.webhook import InboundEvent, WebhookResponse, parse_evolution_payload

__all__ = ["InboundEvent", "WebhookResponse", "parse_evolution_payload"]
