from menubot.models.chatbot_config import ChatbotConfig
from menubot.models.contact import Contact
from menubot.models.interaction_log import InteractionLog
from menubot.models.menu import Menu, MenuOption
from menubot.models.seller_instance import SellerInstance
from menubot.models.trigger import GlobalTrigger
from menubot.models.variable import Variable

__all__ = [
    "ChatbotConfig",
    "Contact",
    "InteractionLog",
    "Menu",
    "MenuOption",
    "SellerInstance",
    "GlobalTrigger",
    "Variable",
]
