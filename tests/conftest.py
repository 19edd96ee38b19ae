"""
Shared pytest fixtures:
- Sandbox blockchain with a funded deployer treasury
- Reference code cells for each contract version
- A deployed counter helper
"""
from __future__ import annotations

from typing import Callable

import pytest

from counter_sdk.cell import Cell
from counter_sdk.contracts.counter import CounterContract
from counter_sdk.messages import CounterConfig
from counter_sdk.sandbox import Blockchain, Treasury, reference_code
from counter_sdk.upgrade import ContractVersion
from counter_sdk.utils.units import to_nano

VALUE = to_nano("0.05")


@pytest.fixture
def blockchain() -> Blockchain:
    return Blockchain()


@pytest.fixture
def deployer(blockchain: Blockchain) -> Treasury:
    return blockchain.treasury("deployer")


@pytest.fixture
def code_v1() -> Cell:
    return reference_code(ContractVersion.V1)


@pytest.fixture
def code_v2() -> Cell:
    return reference_code(ContractVersion.V2)


@pytest.fixture
def code_v3() -> Cell:
    return reference_code(ContractVersion.V3)


@pytest.fixture
def deploy_counter(blockchain: Blockchain, deployer: Treasury) -> Callable[..., CounterContract]:
    """Deploy a counter with the given code/config and return the bound handle."""

    def _deploy(code: Cell, id: int = 0, counter: int = 0) -> CounterContract:
        contract = blockchain.open_contract(
            CounterContract.create_from_config(CounterConfig(id=id, counter=counter), code)
        )
        result = contract.send_deploy(deployer, value=VALUE)
        result.raise_for_failure()
        assert result.has_transaction(to=contract.address, deploy=True, success=True)
        return contract

    return _deploy
