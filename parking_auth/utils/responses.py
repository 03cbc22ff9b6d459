"""
Response envelope shared by every endpoint
"""

from typing import Any, Dict, Optional


def success_response(message: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    body = {"success": True, "message": message}
    if data is not None:
        body["data"] = data
    return body


def error_response(message: str) -> Dict[str, Any]:
    return {"success": False, "message": message}
