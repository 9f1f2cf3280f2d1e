"""Operator 异常体系

只有 ConflictError 在抢占流程内就地消化；其余异常均向上抛出单任务流水线，
由编排层记录并释放 guard，等待下一轮轮询重试。
"""


class OperatorError(Exception):
    """Operator 基础异常"""

    def __init__(self, message: str, recoverable: bool = True) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过后续轮询重试恢复
        """
        super().__init__(message)
        self.recoverable = recoverable


class ConflictError(OperatorError):
    """抢占竞争失败（任务已被其他 operator 领取）

    由 oracle 调用边界根据已知 revert 签名分类产生，属于良性竞争。
    """

    def __init__(self, task_id: int, signature: str) -> None:
        """
        Args:
            task_id: 任务 ID
            signature: 命中的冲突签名（错误名或 selector）
        """
        super().__init__(
            f"Task #{task_id} 已被领取 ({signature})",
            recoverable=True,
        )
        self.task_id = task_id
        self.signature = signature


class DeadlineExceededError(OperatorError, TimeoutError):
    """有界等待超时"""

    def __init__(self, operation: str, timeout_s: float) -> None:
        super().__init__(
            f"{operation} 超时 ({timeout_s}s)",
            recoverable=True,
        )
        self.operation = operation
        self.timeout_s = timeout_s


class OracleError(OperatorError):
    """Oracle 读取失败"""


class AcquisitionError(OperatorError):
    """抢占写入失败且不属于已知冲突签名"""

    def __init__(self, task_id: int, original_error: Exception) -> None:
        super().__init__(
            f"Task #{task_id} 领取失败: {original_error}",
            recoverable=True,
        )
        self.task_id = task_id
        self.original_error = original_error


class SubmissionError(OperatorError):
    """验证结果提交失败

    对未确认的验证重复提交是幂等的，因此可安全重试。
    """

    def __init__(self, task_id: int, original_error: Exception) -> None:
        super().__init__(
            f"Task #{task_id} 验证结果提交失败: {original_error}",
            recoverable=True,
        )
        self.task_id = task_id
        self.original_error = original_error


class VerificationError(OperatorError):
    """证明校验失败基类（fail closed，不提交任何结果）"""


class ProofFormatError(VerificationError):
    """证明服务返回结构不符合约定"""


class InvalidPRLinkError(ProofFormatError):
    """PR 链接不是 GitHub pull request URL"""

    def __init__(self, pr_link: str) -> None:
        super().__init__(f"无效的 GitHub PR 链接: {pr_link}", recoverable=False)
        self.pr_link = pr_link


class ExtractionError(VerificationError):
    """无法从证明 payload 中提取 context 片段"""


class TransportError(VerificationError):
    """证明服务网络/API 调用失败"""

    def __init__(self, url: str, original_error: Exception) -> None:
        super().__init__(
            f"证明服务调用失败: {url} -- {original_error}",
            recoverable=True,
        )
        self.url = url
        self.original_error = original_error


class RegistrationError(OperatorError):
    """Operator 未在 oracle 注册，无法启动"""

    def __init__(self, operator: str, original_error: Exception) -> None:
        super().__init__(
            f"Operator {operator} 未注册或 oracle 不可达: {original_error}",
            recoverable=False,
        )
        self.operator = operator
        self.original_error = original_error
