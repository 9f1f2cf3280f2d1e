"""OperatorConfig -- Operator 配置加载

从环境变量加载配置，字段默认值与线上部署保持一致。
POLL_INTERVAL 沿用毫秒单位（与已部署的 .env 兼容），加载时换算为秒。
"""

import os
from pathlib import Path
from typing import Literal

import structlog
from pydantic import BaseModel, Field, SecretStr

log = structlog.get_logger()

DEFAULT_PROOF_API_URL = "https://zkpull-services.up.railway.app"


class OperatorConfig(BaseModel):
    """Operator 配置 -- 从环境变量加载

    环境变量:
        MANTLE_SEPOLIA_RPC_URL: 链 RPC 地址
        OPERATOR_PRIVATE_KEY: Operator 签名私钥
        AVS_CONTRACT_ADDRESS: AVS 合约地址
        OPERATOR_ENDPOINT: Operator 对外 endpoint
        POLL_INTERVAL: 轮询间隔（毫秒，默认 30000）
        ZKTLS_API_URL: 证明生成服务地址
        ZKTLS_ACCESS_TOKEN: claim 无 access token 时使用的兜底凭证
    """

    rpc_url: str = Field(default="", description="链 RPC 地址")
    private_key: SecretStr = Field(default=SecretStr(""), description="Operator 签名私钥")
    avs_address: str = Field(default="", description="AVS 合约地址")
    endpoint: str = Field(
        default="http://localhost:3000",
        description="Operator 对外 endpoint",
    )
    poll_interval_s: float = Field(default=30.0, gt=0, description="轮询间隔（秒）")
    proof_api_url: str = Field(
        default=DEFAULT_PROOF_API_URL,
        description="zkTLS 证明生成服务基础 URL",
    )
    proof_api_token: SecretStr = Field(
        default=SecretStr(""),
        description="证明服务兜底 bearer token",
    )
    task_fetch_timeout_s: float = Field(default=10.0, gt=0, description="任务详情读取超时（秒）")
    proof_timeout_s: float = Field(default=120.0, gt=0, description="证明生成超时（秒）")
    auto_assignment_wait_s: float = Field(
        default=3.0,
        ge=0,
        description="TaskCreated 之后等待自动分配的宽限时间（秒）",
    )
    oracle_mode: Literal["web3", "memory"] = Field(
        default="web3",
        description="Oracle 运行模式：web3 / memory",
    )
    health_port: int = Field(default=0, ge=0, description="健康检查端口，0 表示不启动")


def _get_base_dir() -> Path:
    """获取 data 基础目录"""
    return Path(os.environ.get("ZKPULL_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 attempt journal 的 SQLite 路径"""
    return os.environ.get(
        "ZKPULL_DB_PATH",
        str(_get_base_dir() / "sqlite" / "zkpull.db"),
    )


def _read_float(env_var: str, default: float, scale: float = 1.0) -> float | None:
    val = os.environ.get(env_var)
    if not val:
        return None
    try:
        return float(val) / scale
    except ValueError:
        log.warning(
            "invalid_numeric_config",
            env_var=env_var,
            value=val,
            fallback=default,
        )
        return None


def load_operator_config() -> OperatorConfig:
    """从环境变量加载 Operator 配置

    无效的数值配置只记录 warning 并使用默认值，不阻塞启动。

    Returns:
        OperatorConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("MANTLE_SEPOLIA_RPC_URL"):
        kwargs["rpc_url"] = val

    if val := os.environ.get("OPERATOR_PRIVATE_KEY"):
        kwargs["private_key"] = SecretStr(val)

    if val := os.environ.get("AVS_CONTRACT_ADDRESS"):
        kwargs["avs_address"] = val

    if val := os.environ.get("OPERATOR_ENDPOINT"):
        kwargs["endpoint"] = val

    if val := os.environ.get("ZKTLS_API_URL"):
        kwargs["proof_api_url"] = val

    if val := os.environ.get("ZKTLS_ACCESS_TOKEN"):
        kwargs["proof_api_token"] = SecretStr(val)

    if val := os.environ.get("ZKPULL_ORACLE_MODE"):
        kwargs["oracle_mode"] = val

    # POLL_INTERVAL 单位为毫秒
    if (seconds := _read_float("POLL_INTERVAL", 30000, scale=1000)) is not None:
        kwargs["poll_interval_s"] = seconds

    numeric_fields = {
        "ZKPULL_TASK_FETCH_TIMEOUT_S": ("task_fetch_timeout_s", 10.0),
        "ZKPULL_PROOF_TIMEOUT_S": ("proof_timeout_s", 120.0),
        "ZKPULL_AUTO_ASSIGNMENT_WAIT_S": ("auto_assignment_wait_s", 3.0),
    }
    for env_var, (field, default) in numeric_fields.items():
        if (value := _read_float(env_var, default)) is not None:
            kwargs[field] = value

    if val := os.environ.get("ZKPULL_HEALTH_PORT"):
        try:
            kwargs["health_port"] = int(val)
        except ValueError:
            log.warning(
                "invalid_numeric_config",
                env_var="ZKPULL_HEALTH_PORT",
                value=val,
                fallback=0,
            )

    return OperatorConfig(**kwargs)
