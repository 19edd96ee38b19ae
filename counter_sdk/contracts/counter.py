"""
counter_sdk.contracts.counter
=============================

Client for the upgradable counter contract.

The client is intentionally thin: it builds message bodies with
`counter_sdk.messages`, hands exactly one internal message per call to the
injected transport, and decodes view results. It never retries, never
interprets failures and never waits for inclusion; see
`counter_sdk.utils.retry.poll_until` for waiting.

Example
-------
    from counter_sdk.contracts.counter import CounterContract
    from counter_sdk.messages import CounterConfig
    from counter_sdk.utils.units import to_nano

    contract = CounterContract.create_from_config(CounterConfig(id=7, counter=0), code, transport=transport)
    contract.send_deploy(wallet, value=to_nano("0.05"))
    contract.send_increase(wallet, increase_by=5, value=to_nano("0.05"))
    contract.get_counter()
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..address import Address
from ..cell import Cell, StateInit, contract_address
from ..errors import EncodeError
from ..messages import (CounterConfig, config_to_cell, decode_number, deploy_body,
                        decrease_body, increase_body, upgrade_all_body,
                        upgrade_body)
from ..transport import InternalMessage, Sender, SendMode, Transport

__all__ = ["CounterContract"]

log = logging.getLogger(__name__)


class CounterContract:
    """
    Handle bound to one counter contract address.

    Parameters
    ----------
    address : contract address
    init : {code, data} bundle; required only for the deploy message
    transport : where messages go and view calls are answered; can be bound
        later with `bind()`
    """

    def __init__(
        self,
        address: Address,
        init: Optional[StateInit] = None,
        *,
        transport: Optional[Transport] = None,
    ) -> None:
        self._address = address
        self._init = init
        self._transport = transport

    # ------------------------------------------------------------------ Factories

    @classmethod
    def create_from_address(cls, address: Address | str, *, transport: Optional[Transport] = None) -> "CounterContract":
        return cls(Address.parse(address), transport=transport)

    @classmethod
    def create_from_config(
        cls,
        config: CounterConfig,
        code: Cell,
        workchain: int = 0,
        *,
        transport: Optional[Transport] = None,
    ) -> "CounterContract":
        init = StateInit(code=code, data=config_to_cell(config))
        return cls(contract_address(workchain, init), init, transport=transport)

    # ------------------------------------------------------------------ Accessors

    @property
    def address(self) -> Address:
        return self._address

    @property
    def init(self) -> Optional[StateInit]:
        return self._init

    def bind(self, transport: Transport) -> "CounterContract":
        """Return a copy of this handle using `transport`."""
        return type(self)(self._address, self._init, transport=transport)

    @property
    def transport(self) -> Transport:
        if self._transport is None:
            raise RuntimeError("CounterContract is not bound to a transport; call bind() first")
        return self._transport

    # ------------------------------------------------------------------ Sends

    def _submit(self, via: Optional[Sender], body: Cell, value: int, *, init: Optional[StateInit] = None) -> Any:
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise EncodeError(f"value must be a non-negative int (nano), got {value!r}", field="value")
        message = InternalMessage(
            to=self._address,
            value=value,
            body=body,
            send_mode=SendMode.PAY_GAS_SEPARATELY,
            init=init,
        )
        log.debug("send %s value=%d", self._address.to_raw(), value)
        return self.transport.submit(message, via=via)

    def send_deploy(self, via: Optional[Sender], value: int) -> Any:
        """Send an empty body carrying the init bundle."""
        if self._init is None:
            raise EncodeError("deploy requires an init bundle; use create_from_config()", field="init")
        return self._submit(via, deploy_body(), value, init=self._init)

    def send_increase(self, via: Optional[Sender], *, increase_by: int, value: int, query_id: int = 0) -> Any:
        return self._submit(via, increase_body(increase_by, query_id=query_id), value)

    def send_decrease(self, via: Optional[Sender], *, decrease_by: int, value: int, query_id: int = 0) -> Any:
        return self._submit(via, decrease_body(decrease_by, query_id=query_id), value)

    def send_upgrade(self, via: Optional[Sender], *, code: Cell, value: int, query_id: int = 0) -> Any:
        """
        Replace the contract code only. The state cell stays as is, so `code`
        must read the current layout.
        """
        return self._submit(via, upgrade_body(code, query_id=query_id), value)

    def send_upgrade_all(
        self,
        via: Optional[Sender],
        *,
        code: Cell,
        data: Cell,
        value: int,
        query_id: int = 0,
    ) -> Any:
        """Replace the contract code and the whole state cell."""
        return self._submit(via, upgrade_all_body(code, data, query_id=query_id), value)

    # ------------------------------------------------------------------ Getters

    def get_counter(self) -> int:
        return decode_number(self.transport.view_call(self._address, "get_counter", []))

    def get_id(self) -> int:
        return decode_number(self.transport.view_call(self._address, "get_id", []))

    def is_deployed(self) -> bool:
        return self.transport.is_deployed(self._address)

    def __repr__(self) -> str:
        return f"CounterContract({self._address.to_raw()!r}, init={'yes' if self._init else 'no'})"
