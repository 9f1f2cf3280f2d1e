"""ContractOracle -- AVS 合约上的 TaskOracle 实现

通过 web3.py AsyncWeb3 读写 AVS 合约与 IssuesClaim 合约。
推送事件通过按区块区间拉取日志实现。
"""

import asyncio
from collections.abc import AsyncIterator

import structlog
from web3 import AsyncWeb3
from web3.exceptions import ContractLogicError
from zkpull.core.exceptions import OracleError
from zkpull.core.models import (
    ClaimRecord,
    OracleEvent,
    TaskAssignedEvent,
    TaskCreatedEvent,
    TaskRecord,
    TaskStatus,
    TxReceipt,
)

from .abi import AVS_ABI, ISSUES_CLAIM_ABI, PICK_TASK_GAS_LIMIT
from .conflicts import RevertInfo, parse_revert_reason, raise_for_revert

log = structlog.get_logger()

# 事件日志拉取间隔（秒）
EVENT_POLL_INTERVAL_S = 4.0


def revert_info_from(error: ContractLogicError) -> RevertInfo:
    """从 web3 合约异常中提取 revert 信息"""
    message = getattr(error, "message", None) or str(error)
    data = getattr(error, "data", None)
    return RevertInfo(
        reason=parse_revert_reason(message),
        data=data if isinstance(data, str) else None,
    )


class ContractOracle:
    """AVS 合约客户端"""

    def __init__(
        self,
        rpc_url: str,
        private_key: str,
        avs_address: str,
        receipt_timeout_s: float = 120.0,
        event_poll_interval_s: float = EVENT_POLL_INTERVAL_S,
        w3: AsyncWeb3 | None = None,
    ) -> None:
        """初始化合约客户端

        Args:
            rpc_url: 链 RPC 地址
            private_key: Operator 签名私钥
            avs_address: AVS 合约地址
            receipt_timeout_s: 等待交易回执的超时（秒）
            event_poll_interval_s: 事件日志拉取间隔（秒）
            w3: 可注入的 AsyncWeb3 实例（测试用）
        """
        self._w3 = w3 or AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url))
        self._account = self._w3.eth.account.from_key(private_key)
        self._avs = self._w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(avs_address),
            abi=AVS_ABI,
        )
        self._issues_claim = None
        self._receipt_timeout_s = receipt_timeout_s
        self._event_poll_interval_s = event_poll_interval_s

    @property
    def operator(self) -> str:
        return self._account.address

    async def get_task(self, task_id: int) -> TaskRecord:
        try:
            raw = await self._avs.functions.getTask(task_id).call()
        except Exception as e:
            raise OracleError(f"读取 Task #{task_id} 失败: {e}") from e
        (
            raw_id,
            issue_id,
            claim_index,
            pr_link,
            developer,
            created_at,
            status,
            assigned_operator,
            zk_proof,
        ) = raw
        return TaskRecord(
            task_id=raw_id,
            issue_id=issue_id,
            claim_index=claim_index,
            pr_link=pr_link,
            developer=developer,
            created_at=created_at,
            status=TaskStatus(status),
            assigned_operator=assigned_operator,
            zk_proof=bytes(zk_proof),
        )

    async def get_claim(self, issue_id: int, claim_index: int) -> ClaimRecord:
        contract = await self._get_issues_claim_contract()
        try:
            raw = await contract.functions.claims(issue_id, claim_index).call()
        except Exception as e:
            raise OracleError(
                f"读取 Claim ({issue_id}, {claim_index}) 失败: {e}"
            ) from e
        pr_link, is_merged, developer, is_validated, timestamp, access_token = raw
        return ClaimRecord(
            issue_id=issue_id,
            claim_index=claim_index,
            pr_link=pr_link,
            is_merged=is_merged,
            developer=developer,
            is_validated=is_validated,
            timestamp=timestamp,
            access_token=access_token or "",
        )

    async def get_operator_tasks(self, operator: str) -> list[int]:
        try:
            task_ids = await self._avs.functions.getOperatorTasks(
                AsyncWeb3.to_checksum_address(operator)
            ).call()
        except Exception as e:
            raise OracleError(f"读取 operator 任务列表失败: {e}") from e
        return [int(task_id) for task_id in task_ids]

    async def pick_task(self, task_id: int) -> TxReceipt:
        fn = self._avs.functions.pickTask(task_id)
        try:
            # 预检调用：固定 gas 的交易失败时拿不到 revert 数据
            await fn.call({"from": self.operator})
            return await self._send(fn, gas=PICK_TASK_GAS_LIMIT)
        except ContractLogicError as e:
            raise_for_revert(task_id, revert_info_from(e), e)
            raise

    async def submit_validation(
        self,
        task_id: int,
        is_valid: bool,
        zk_proof: bytes,
    ) -> TxReceipt:
        fn = self._avs.functions.submitValidation(task_id, is_valid, zk_proof)
        return await self._send(fn)

    async def watch_events(self) -> AsyncIterator[OracleEvent]:
        """按区块区间拉取 TaskCreated / TaskAssigned 日志

        单次 RPC 失败只记日志，下一次拉取从同一区块重试，不会跳过区间。
        """
        from_block: int | None = None
        while True:
            try:
                latest = await self._w3.eth.block_number
                if from_block is None:
                    from_block = latest + 1
                    logs = []
                elif latest >= from_block:
                    created = await self._avs.events.TaskCreated.get_logs(
                        from_block=from_block, to_block=latest
                    )
                    assigned = await self._avs.events.TaskAssigned.get_logs(
                        from_block=from_block, to_block=latest
                    )
                    logs = sorted(
                        [*created, *assigned],
                        key=lambda entry: (entry["blockNumber"], entry["logIndex"]),
                    )
                    from_block = latest + 1
                else:
                    logs = []
            except Exception as e:
                log.warning(
                    "event_log_fetch_failed",
                    from_block=from_block,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                logs = []

            for entry in logs:
                yield self._to_event(entry)
            await asyncio.sleep(self._event_poll_interval_s)

    async def _get_issues_claim_contract(self):
        """懒加载 IssuesClaim 合约"""
        if self._issues_claim is None:
            address = await self._avs.functions.issuesClaimContract().call()
            self._issues_claim = self._w3.eth.contract(
                address=address,
                abi=ISSUES_CLAIM_ABI,
            )
        return self._issues_claim

    async def _send(self, fn, gas: int | None = None) -> TxReceipt:
        """签名、发送交易并等待确认"""
        sender = self.operator
        params = {
            "from": sender,
            "nonce": await self._w3.eth.get_transaction_count(sender, "pending"),
            "chainId": await self._w3.eth.chain_id,
        }
        if gas is not None:
            params["gas"] = gas
        tx = await fn.build_transaction(params)
        signed = self._account.sign_transaction(tx)
        tx_hash = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
        tx_hash_hex = AsyncWeb3.to_hex(tx_hash)

        log.info("oracle_tx_sent", fn=fn.fn_name, tx_hash=tx_hash_hex)
        receipt = await self._w3.eth.wait_for_transaction_receipt(
            tx_hash,
            timeout=self._receipt_timeout_s,
        )
        if receipt["status"] != 1:
            raise OracleError(f"交易 {tx_hash_hex} 执行失败", recoverable=True)
        return TxReceipt(tx_hash=tx_hash_hex, block_number=receipt["blockNumber"])

    @staticmethod
    def _to_event(entry) -> OracleEvent:
        args = entry["args"]
        if entry["event"] == "TaskCreated":
            return TaskCreatedEvent(
                task_id=args["taskId"],
                issue_id=args["issueId"],
                claim_index=args["claimIndex"],
            )
        return TaskAssignedEvent(task_id=args["taskId"], operator=args["operator"])
