"""
FastAPI 依赖注入

- SessionDep: 每个请求一个数据库会话，请求结束后关闭
- CurrentUser: 从 Authorization: Bearer <token> 解析出的当前用户
- CurrentSeller: 当前用户的店铺，没开店的用户访问店铺接口返回 403
"""
from collections.abc import Generator
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from app.core import security
from app.core.db import engine
from app.crud.user import get_seller_by_user_id
from app.models import Seller, User

# 令牌由认证服务签发，这里只校验
reusable_oauth2 = HTTPBearer()


def get_db() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


SessionDep = Annotated[Session, Depends(get_db)]
TokenDep = Annotated[HTTPAuthorizationCredentials, Depends(reusable_oauth2)]


def get_current_user(session: SessionDep, token: TokenDep) -> User:
    """
    获取当前登录用户

    Raises:
        HTTPException: 令牌无效（401 Could not validate credentials）或用户不存在（401 User not found）
    """
    user_id = security.decode_user_id(token.credentials)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    user = session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def get_current_seller(session: SessionDep, current_user: CurrentUser) -> Seller:
    seller = get_seller_by_user_id(session=session, user_id=current_user.id)
    if not seller:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not a seller")
    return seller


CurrentSeller = Annotated[Seller, Depends(get_current_seller)]
