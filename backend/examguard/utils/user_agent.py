from typing import Dict, Optional


def parse_user_agent(user_agent: Optional[str]) -> Dict[str, str]:
    """Coarse browser/os/device guess; descriptive only, never used for decisions"""
    ua = user_agent or ""

    browser = "Unknown"
    if "Edg" in ua:
        browser = "Edge"
    elif "Chrome" in ua:
        browser = "Chrome"
    elif "Firefox" in ua:
        browser = "Firefox"
    elif "Safari" in ua:
        browser = "Safari"

    os_name = "Unknown"
    if "Windows" in ua:
        os_name = "Windows"
    elif "Android" in ua:
        os_name = "Android"
    elif "iPhone" in ua or "iPad" in ua:
        os_name = "iOS"
    elif "Mac" in ua:
        os_name = "MacOS"
    elif "Linux" in ua:
        os_name = "Linux"

    device = "Desktop"
    if "Tablet" in ua or "iPad" in ua:
        device = "Tablet"
    elif "Mobile" in ua or "Android" in ua:
        device = "Mobile"

    return {
        "user_agent": ua,
        "browser": browser,
        "os": os_name,
        "device": device,
    }
