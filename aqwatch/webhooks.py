"""Posting alerts to chat-bot webhooks (WeChat Work, DingTalk).

Both robots answer HTTP 200 with a JSON body carrying `errcode`; a non-zero
code means the message was rejected even though the request succeeded.
Senders never retry.
"""

from typing import Any, Dict, Optional
from urllib.parse import quote, quote_plus

import requests

from .alerts import AlertMessage
from .errors import ApplicationError, HTTPStatusError, TransportError

WECHAT_WORK_URL = "https://qyapi.weixin.qq.com/cgi-bin/webhook/send"
DINGTALK_URL = "https://oapi.dingtalk.com/robot/send"

RESPONSE_BODY_LIMIT = 4096


def _redact(text: str, secret: str) -> str:
    """Masks the credential, raw and in its URL-encoded forms."""
    if not secret:
        return text
    for form in sorted({secret, quote(secret, safe=""), quote_plus(secret)}, key=len, reverse=True):
        text = text.replace(form, "<redacted>")
    return text


def wechat_work_payload(message: AlertMessage) -> Dict[str, Any]:
    return {"msgtype": "markdown", "markdown": {"content": message.text}}


def dingtalk_payload(message: AlertMessage) -> Dict[str, Any]:
    return {
        "msgtype": "markdown",
        "markdown": {"title": message.title, "text": message.text},
        "at": {"isAtAll": False},
    }


def response_errcode(resp: requests.Response) -> Optional[float]:
    """Returns the non-zero numeric errcode of a JSON object body, else None.

    Bodies that are not JSON objects count as success.
    """
    try:
        data = resp.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    errcode = data.get("errcode")
    if isinstance(errcode, bool) or not isinstance(errcode, (int, float)):
        return None
    return errcode if errcode != 0 else None


def post_webhook(
    session: requests.Session,
    channel: str,
    url: str,
    params: Dict[str, str],
    payload: Dict[str, Any],
    timeout: float,
    secret: str = "",
) -> None:
    """POSTs a JSON payload and validates transport, status and errcode.

    timeout bounds connecting and each socket read, not the whole exchange.

    Raises:
        TransportError: request could not be sent
        HTTPStatusError: non-2xx response
        ApplicationError: non-zero errcode in the body
    """
    try:
        resp = session.post(url, params=params, json=payload, timeout=timeout)
    except requests.RequestException as e:
        raise TransportError(_redact(f"{channel} webhook request failed: {e}", secret)) from None
    body = resp.text[:RESPONSE_BODY_LIMIT]
    if not 200 <= resp.status_code < 300:
        raise HTTPStatusError(
            resp.status_code,
            body,
            _redact(f"{channel} webhook http status {resp.status_code}: {body}", secret),
        )
    errcode = response_errcode(resp)
    if errcode is not None:
        raise ApplicationError(
            errcode,
            body,
            _redact(f"{channel} webhook errcode={errcode}, body={body}", secret),
        )


def send_wechat_work(session: requests.Session, webhook_key: str, message: AlertMessage, timeout: float) -> bool:
    """Sends to a WeChat Work group robot. Returns False (no request) when the key is blank."""
    key = webhook_key.strip()
    if not key:
        return False
    post_webhook(
        session, "wechat", WECHAT_WORK_URL, {"key": key},
        wechat_work_payload(message), timeout, secret=key,
    )
    return True


def send_dingtalk(session: requests.Session, access_token: str, message: AlertMessage, timeout: float) -> bool:
    """Sends to a DingTalk custom robot. Returns False (no request) when the token is blank."""
    token = access_token.strip()
    if not token:
        return False
    post_webhook(
        session, "dingtalk", DINGTALK_URL, {"access_token": token},
        dingtalk_payload(message), timeout, secret=token,
    )
    return True
