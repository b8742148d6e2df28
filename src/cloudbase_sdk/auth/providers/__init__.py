from __future__ import annotations

from .weixin import WeixinAuthProvider, get_weixin_code

__all__ = ["WeixinAuthProvider", "get_weixin_code"]
