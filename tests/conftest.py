"""
Global test configuration and fixtures
"""

from collections.abc import Callable
from pathlib import Path

import pytest

VULNERABLE_CONTRACT = """\
use cosmwasm_std::{entry_point, DepsMut, Env, MessageInfo, Response, StdResult, Uint128, Order};
use cw_storage_plus::{Item, Map};

const CONFIG: Item<Config> = Item::new("config");
const BALANCES: Map<&str, Uint128> = Map::new("balances");

pub struct Config {
    pub owner: String,
}

pub enum ExecuteMsg {
    Transfer {
        recipient: String,
        amount: Uint128,
    },
    UpdateConfig {
        new_owner: String,
    },
    Withdraw {},
}

#[entry_point]
pub fn instantiate(deps: DepsMut, _env: Env, info: MessageInfo, _msg: InstantiateMsg) -> StdResult<Response> {
    let config = Config { owner: info.sender.to_string() };
    CONFIG.save(deps.storage, &config)?;
    Ok(Response::new())
}

#[entry_point]
pub fn execute(deps: DepsMut, env: Env, info: MessageInfo, msg: ExecuteMsg) -> StdResult<Response> {
    match msg {
        ExecuteMsg::Transfer { recipient, amount } => {
            BALANCES.save(deps.storage, &recipient, &amount)?;
            Ok(Response::new())
        }
        ExecuteMsg::UpdateConfig { new_owner } => {
            let config = Config { owner: new_owner };
            CONFIG.save(deps.storage, &config)?;
            Ok(Response::new())
        }
        ExecuteMsg::Withdraw {} => {
            let _all: Vec<_> = BALANCES
                .range(deps.storage, None, None, Order::Ascending)
                .collect::<StdResult<Vec<_>>>()?;
            Ok(Response::new())
        }
    }
}
"""

SAFE_CONTRACT = """\
use cosmwasm_std::{entry_point, DepsMut, Env, MessageInfo, Response, StdResult, StdError, Uint128, Order};
use cw_storage_plus::{Item, Map};

const CONFIG: Item<Config> = Item::new("config");
const BALANCES: Map<&str, Uint128> = Map::new("balances");

pub struct Config {
    pub owner: String,
}

pub enum ExecuteMsg {
    Transfer { recipient: String, amount: Uint128 },
    ListBalances { limit: u32 },
}

#[entry_point]
pub fn instantiate(deps: DepsMut, _env: Env, info: MessageInfo, _msg: InstantiateMsg) -> StdResult<Response> {
    CONFIG.save(deps.storage, &Config { owner: info.sender.to_string() })?;
    Ok(Response::new())
}

#[entry_point]
pub fn execute(deps: DepsMut, _env: Env, info: MessageInfo, msg: ExecuteMsg) -> StdResult<Response> {
    if !info.funds.is_empty() {
        return Err(StdError::generic_err("no funds expected"));
    }
    match msg {
        ExecuteMsg::Transfer { recipient, amount } => {
            let _validated = deps.api.addr_validate(&recipient)?;
            if info.sender != CONFIG.load(deps.storage)?.owner {
                return Err(StdError::generic_err("unauthorized"));
            }
            Ok(Response::new())
        }
        ExecuteMsg::ListBalances { limit } => {
            let _balances: Vec<_> = BALANCES
                .range(deps.storage, None, None, Order::Ascending)
                .take(limit as usize)
                .collect::<StdResult<Vec<_>>>()?;
            Ok(Response::new())
        }
    }
}
"""


@pytest.fixture
def vulnerable_source() -> str:
    return VULNERABLE_CONTRACT


@pytest.fixture
def safe_source() -> str:
    return SAFE_CONTRACT


@pytest.fixture
def write_crate(tmp_path) -> Callable[[dict[str, str]], Path]:
    """Write {relative path: source} under a fresh crate directory"""

    def _write(files: dict[str, str]) -> Path:
        root = tmp_path / "crate"
        for rel, source in files.items():
            target = root / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(source, encoding="utf-8")
        return root

    return _write


# Pytest hooks
def pytest_configure(config):
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests (filesystem, CLI)")


def pytest_collection_modifyitems(config, items):
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
