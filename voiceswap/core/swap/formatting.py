"""Speech rendering of backend quotes, executions and statuses."""

from typing import Optional

from ..voice.responses import Responses, format_optimistic_quote, format_swap_result
from .models import ExecutionResult, ExecutionStatus, Quote, StatusResponse, TransactionStatus


def format_quote_for_speech(quote: Quote) -> str:
    return format_optimistic_quote(
        quote.token_in.amount,
        quote.token_in.symbol,
        quote.token_out.amount,
        quote.token_out.symbol,
        quote.price_impact,
    )


def format_execution_for_speech(
    result: ExecutionResult,
    amount_out: Optional[str] = None,
    symbol_out: Optional[str] = None,
) -> str:
    if result.status == ExecutionStatus.SUBMITTED and result.tx_hash:
        if amount_out and symbol_out:
            return format_swap_result(result.tx_hash, amount_out, symbol_out)
        return Responses.SWAP_SUBMITTED

    if result.status == ExecutionStatus.FAILED:
        return f"Failed: {result.error}" if result.error else Responses.TX_FAILED

    return f"Status: {result.status.value}"


def format_status_for_speech(status: StatusResponse) -> str:
    if status.status == TransactionStatus.CONFIRMED:
        if status.confirmations and status.confirmations > 1:
            return f"Confirmed! {status.confirmations} blocks."
        return Responses.TX_CONFIRMED
    if status.status == TransactionStatus.PENDING:
        return Responses.TX_PENDING
    if status.status == TransactionStatus.FAILED:
        return Responses.TX_FAILED
    if status.status == TransactionStatus.NOT_FOUND:
        return "Transaction not found."
    return f"Status: {status.status.value}"
