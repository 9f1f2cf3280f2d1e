"""CLI 入口模块 -- python -m zkpull.operator

加载配置 -> 组装 oracle / 证明校验 / journal / 编排器 -> 校验注册 -> 运行直到 SIGINT/SIGTERM。
"""

import asyncio
import signal
import sys

import structlog
import uvicorn
from zkpull.core.config import OperatorConfig, get_db_path, load_operator_config
from zkpull.core.exceptions import RegistrationError
from zkpull.core.store import create_attempt_journal
from zkpull.oracle import InMemoryLedger, TaskOracle
from zkpull.verifier import ProofServiceClient, ProofVerifier

from .health import create_health_app
from .logging_config import setup_logging
from .orchestrator import Orchestrator

log = structlog.get_logger()

# memory 模式下的本地 operator 身份
LOCAL_OPERATOR = "0x0000000000000000000000000000000000000001"


def main() -> None:
    """CLI 主入口"""
    setup_logging()
    config = load_operator_config()
    try:
        exit_code = asyncio.run(run_operator(config))
    except KeyboardInterrupt:
        exit_code = 0
    sys.exit(exit_code)


def build_oracle(config: OperatorConfig) -> tuple[TaskOracle, str]:
    """按 oracle_mode 创建 oracle，返回 (oracle, operator 地址)"""
    if config.oracle_mode == "memory":
        ledger = InMemoryLedger()
        return ledger.connect(LOCAL_OPERATOR), LOCAL_OPERATOR

    from zkpull.oracle.contract import ContractOracle

    oracle = ContractOracle(
        rpc_url=config.rpc_url,
        private_key=config.private_key.get_secret_value(),
        avs_address=config.avs_address,
    )
    return oracle, oracle.operator


async def run_operator(config: OperatorConfig) -> int:
    """运行 operator，返回进程退出码"""
    if config.oracle_mode == "web3":
        missing = [
            name
            for name, value in (
                ("MANTLE_SEPOLIA_RPC_URL", config.rpc_url),
                ("OPERATOR_PRIVATE_KEY", config.private_key.get_secret_value()),
                ("AVS_CONTRACT_ADDRESS", config.avs_address),
            )
            if not value
        ]
        if missing:
            log.error("operator_config_missing", env_vars=missing)
            return 1

    oracle, operator = build_oracle(config)
    verifier = ProofVerifier(
        ProofServiceClient(
            config.proof_api_url,
            default_token=config.proof_api_token.get_secret_value(),
            timeout_s=config.proof_timeout_s,
        )
    )
    journal = await create_attempt_journal(get_db_path())
    orchestrator = Orchestrator(
        oracle,
        verifier,
        operator,
        journal=journal,
        poll_interval_s=config.poll_interval_s,
        auto_assignment_wait_s=config.auto_assignment_wait_s,
        fetch_timeout_s=config.task_fetch_timeout_s,
    )

    log.info(
        "operator_starting",
        operator=operator,
        endpoint=config.endpoint,
        oracle_mode=config.oracle_mode,
        proof_api_url=config.proof_api_url,
        poll_interval_s=config.poll_interval_s,
    )

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    server: uvicorn.Server | None = None
    server_task: asyncio.Task | None = None
    try:
        try:
            await orchestrator.start()
        except RegistrationError as e:
            log.error(
                "operator_not_registered",
                operator=operator,
                error=str(e),
                hint="先运行注册流程将该地址注册为 operator",
            )
            return 1

        if config.health_port > 0:
            server = uvicorn.Server(
                uvicorn.Config(
                    create_health_app(orchestrator, journal),
                    host="0.0.0.0",
                    port=config.health_port,
                    log_config=None,
                )
            )
            server_task = asyncio.create_task(server.serve(), name="health-server")

        await stop_event.wait()
        log.info("operator_shutdown_requested")
    finally:
        await orchestrator.stop()
        if server is not None and server_task is not None:
            server.should_exit = True
            await server_task
        await journal.conn.close()
    return 0


if __name__ == "__main__":
    main()
