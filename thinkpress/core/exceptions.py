"""领域异常

核心服务只抛出这里的异常，不依赖 HTTP；main.py 负责把它们映射成响应码。
"""


class ThinkpressError(Exception):
    """所有领域异常的基类"""

    status_code = 500

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class NotFoundError(ThinkpressError):
    """id / slug 无法解析到实体"""

    status_code = 404


class ConflictError(ThinkpressError):
    """唯一约束冲突：重复的 slug / 名称 / 版本号 / 引用对"""

    status_code = 409


class InvalidStateError(ThinkpressError):
    """前置状态不满足，例如重复发布"""

    status_code = 400
