"""
用户与店铺模型模块

用户注册、登录由认证服务负责，这里只保存订单流程需要的资料
（通知邮件的收件人、姓名等）。
"""
from datetime import datetime

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, String
from sqlmodel import Field, SQLModel

from app.core.snowflake import generate_id
from app.enums import UserRole

from .base import utc_now


class User(SQLModel, table=True):
    """
    用户模型

    字段说明：
    - id: 主键，使用 Snowflake 算法生成的分布式唯一 ID
    - email: 邮箱（唯一），订单通知的收件地址
    - first_name / last_name: 姓名
    - phone: 手机号（可选）
    - role: 角色（买家/卖家/管理员）
    """
    __tablename__ = "users"
    id: int = Field(
        default_factory=generate_id,
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False),
    )
    email: str = Field(
        sa_column=Column(String(255), unique=True, index=True, nullable=False),
    )
    first_name: str = Field(default="", max_length=64)
    last_name: str = Field(default="", max_length=64)
    phone: str | None = Field(default=None, max_length=32)
    role: UserRole = Field(
        default=UserRole.buyer, sa_column=Column(String(16), nullable=False)
    )

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Seller(SQLModel, table=True):
    """
    店铺模型

    每个卖家用户最多拥有一个店铺（user_id 唯一）。
    订单的 seller_id 指向这里，而不是 users 表。
    """
    __tablename__ = "sellers"
    id: int = Field(
        default_factory=generate_id,
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False),
    )
    user_id: int = Field(
        sa_column=Column(
            BigInteger,
            ForeignKey("users.id", ondelete="CASCADE"),
            index=True,
            nullable=False,
            unique=True,
        )
    )
    shop_name: str = Field(max_length=128)

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
