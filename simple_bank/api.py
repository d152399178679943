"""
FastAPI REST API Module

JSON endpoints over the session directory: login/logout, balance, transaction
history, deposits, withdrawals and transfers. Sessions are tracked with a
cookie holding the session id.
"""

from decimal import Decimal
from typing import Optional
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response, status
from pydantic import BaseModel, Field, constr
import uvicorn

from . import __version__
from .accounts import BankAccount
from .config import BankConfig, get_config
from .currency import display_plain, format_amount, to_decimal
from .logging_config import setup_logging
from .session import (
    NoUserLoggedInError, RecipientNotFoundError, SessionDirectory, SessionStore
)


class LoginRequest(BaseModel):
    username: constr(strip_whitespace=True, min_length=1) = Field(..., description="Username to log in as")


class AmountRequest(BaseModel):
    amount: str = Field(..., description="Decimal amount as string")

    def to_decimal(self) -> Decimal:
        try:
            return to_decimal(self.amount)
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


class TransferRequest(AmountRequest):
    recipient: str = Field(..., description="Username of the receiving account")


router = APIRouter()


def get_app_config(request: Request) -> BankConfig:
    return request.app.state.config


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_directory(
    request: Request,
    store: SessionStore = Depends(get_session_store),
    config: BankConfig = Depends(get_app_config)
) -> SessionDirectory:
    directory = store.get(request.cookies.get(config.session_cookie_name))
    if directory is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=NoUserLoggedInError.message)
    return directory


def get_current_account(directory: SessionDirectory = Depends(get_directory)) -> BankAccount:
    try:
        return directory.require_current_account()
    except NoUserLoggedInError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))


@router.get("/health")
async def health(store: SessionStore = Depends(get_session_store)):
    return {"status": "healthy", "version": __version__, "sessions": len(store)}


@router.post("/login")
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    store: SessionStore = Depends(get_session_store),
    config: BankConfig = Depends(get_app_config)
):
    """Log in, starting a session if the client has none"""
    session_id, directory = store.get_or_create(request.cookies.get(config.session_cookie_name))
    try:
        message = directory.login(body.username)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    response.set_cookie(config.session_cookie_name, session_id, httponly=True)
    return {"message": message, "username": body.username}


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    store: SessionStore = Depends(get_session_store),
    config: BankConfig = Depends(get_app_config)
):
    """Log out and end the session, discarding its accounts"""
    session_id = request.cookies.get(config.session_cookie_name)
    directory = store.get(session_id)
    if directory is None:
        return {"message": NoUserLoggedInError.message}

    message = directory.logout()
    store.drop(session_id)
    response.delete_cookie(config.session_cookie_name)
    return {"message": message}


@router.get("/account")
async def get_account(
    account: BankAccount = Depends(get_current_account),
    config: BankConfig = Depends(get_app_config)
):
    """Current user's balance"""
    return {
        "owner": account.owner,
        "balance": display_plain(account.balance),
        "formatted_balance": f"${format_amount(account.balance, config.display_precision)}"
    }


@router.get("/account/transactions")
async def get_account_transactions(account: BankAccount = Depends(get_current_account)):
    """Transaction history in chronological order"""
    return {"transactions": [txn.to_dict() for txn in account.get_transactions()]}


@router.post("/account/deposit")
async def deposit(body: AmountRequest, account: BankAccount = Depends(get_current_account)):
    return account.deposit(body.to_decimal()).to_dict()


@router.post("/account/withdraw")
async def withdraw(body: AmountRequest, account: BankAccount = Depends(get_current_account)):
    return account.withdraw(body.to_decimal()).to_dict()


@router.post("/account/transfer")
async def transfer(
    body: TransferRequest,
    directory: SessionDirectory = Depends(get_directory),
    account: BankAccount = Depends(get_current_account)
):
    try:
        result = directory.transfer(body.to_decimal(), body.recipient)
    except RecipientNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return result.to_dict()


def create_app(config: Optional[BankConfig] = None) -> FastAPI:
    """Build the API application with a fresh in-memory session store"""
    config = config or get_config()
    setup_logging(config.log_level, "simple_bank", config.log_format, config.log_file)

    app = FastAPI(
        title="Simple Bank",
        description="Single-session bank account demo",
        version=__version__
    )
    app.state.config = config
    idle_timeout = config.session_timeout_minutes * 60 if config.session_timeout_minutes > 0 else None
    app.state.session_store = SessionStore(config.default_initial_balance, idle_timeout=idle_timeout)
    app.include_router(router)
    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None):
    """Run the API server with uvicorn"""
    config = get_config()
    uvicorn.run(
        create_app(config),
        host=host or config.api_host,
        port=port or config.api_port
    )
