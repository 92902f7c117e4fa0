"""
访问令牌

令牌由认证服务签发（HS256，sub 为用户 ID），这里负责校验；
create_access_token 只给内部工具（支付服务、测试）使用。
"""
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from jwt.exceptions import InvalidTokenError

from app.core.config import settings

ALGORITHM = "HS256"


def create_access_token(subject: str | Any, expires_delta: timedelta) -> str:
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode = {"exp": expire, "sub": str(subject)}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_user_id(token: str) -> int | None:
    """
    解析令牌里的用户 ID

    Returns:
        用户 ID；令牌无效、过期或 sub 不是整数时返回 None
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except InvalidTokenError:
        return None
    subject = payload.get("sub")
    if not subject or not str(subject).isdigit():
        return None
    return int(subject)
