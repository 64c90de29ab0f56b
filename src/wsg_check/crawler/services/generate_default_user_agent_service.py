# src/wsg_check/crawler/services/generate_default_user_agent_service.py
from wsg_check.core.managers.config_manager import config_manager


def generate_default_user_agent() -> str:
    """
    Builds the crawler's User-Agent from the 'user_agent' section of settings.json.

    The product token is embedded so robots.txt groups addressed to it
    (e.g. 'User-agent: wsg-check') apply to our requests.

    Returns:
        str: The constructed User-Agent string.
    """
    product = config_manager.get_nested("user_agent.product", "wsg-check")
    version = config_manager.get_nested("user_agent.version", "0.1.0")
    homepage = config_manager.get_nested("user_agent.homepage")

    comment = f"compatible; {product}/{version}"
    if homepage:
        comment += f"; +{homepage}"
    return f"Mozilla/5.0 ({comment})"
