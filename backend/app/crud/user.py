"""用户与店铺 CRUD 操作"""
from sqlmodel import Session, select

from app.api.errors import AppError
from app.models import Seller, User


def get(*, session: Session, user_id: int) -> User | None:
    """根据 ID 查询用户"""
    return session.get(User, user_id)


def get_seller_by_user_id(*, session: Session, user_id: int) -> Seller | None:
    """查询用户名下的店铺，没有开店返回 None"""
    statement = select(Seller).where(Seller.user_id == user_id)
    return session.exec(statement).first()


def get_seller_owner(*, session: Session, seller_id: int) -> User:
    """查询店铺的店主用户"""
    seller = session.get(Seller, seller_id)
    owner = session.get(User, seller.user_id) if seller else None
    if not owner:
        raise AppError(code=404002, message="Seller not found", status_code=404)
    return owner
