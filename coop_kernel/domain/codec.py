"""
Codec -- Dataset <-> JSON interchange document.

Responsibility:
    Encodes a Dataset as the structured JSON document used for backups and
    for storage blobs, and decodes such documents back.  Field names are
    the camelCase names of the interchange format:

        members        id, name, monthlyContribution
        loans          id, memberId, amount, issueDate, disbursementMode,
                       status, closeDate, repaymentMode
        fds            id, memberId, amount, startDate, investmentMode,
                       status, closeDate, payoutMode
        contributions  {memberId: {monthIndex: {date, mode, remarks,
                        lateFee, lateFeeForgiven}}}
        openingBalances {online, offline}

Architecture position:
    Kernel > Domain -- pure; works on strings and dicts, never files.

Invariants enforced:
    - Lossless decimals: amounts are written as strings and read through
      ``Decimal(str(x))``, so JSON numbers from older backups also load
      without binary float error.
    - Import rejects any document lacking ``members``, ``loans`` or
      ``fds`` before any record is built.

Failure modes:
    - InvalidDatasetFormatError for invalid JSON, missing sections or
      records that fail validation.
"""

from __future__ import annotations

import json
from datetime import date
from decimal import Decimal
from typing import Any

from coop_kernel.domain.records import (
    Closed,
    ContributionRecord,
    Dataset,
    FixedDeposit,
    Loan,
    Member,
    OpeningBalances,
    status_from_fields,
)
from coop_kernel.domain.values import to_decimal
from coop_kernel.exceptions import CoopLedgerError, InvalidDatasetFormatError
from coop_kernel.logging_config import get_logger

logger = get_logger("domain.codec")

REQUIRED_SECTIONS: tuple[str, ...] = ("members", "loans", "fds")


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def _amount(value: Decimal) -> str:
    return str(value)


def _day(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None


def member_to_dict(member: Member) -> dict[str, Any]:
    return {
        "id": member.id,
        "name": member.name,
        "monthlyContribution": _amount(member.monthly_contribution),
    }


def loan_to_dict(loan: Loan) -> dict[str, Any]:
    closed = isinstance(loan.status, Closed)
    return {
        "id": loan.id,
        "memberId": loan.member_id,
        "amount": _amount(loan.amount),
        "issueDate": _day(loan.issue_date),
        "disbursementMode": loan.disbursement_mode,
        "status": loan.status.name,
        "closeDate": _day(loan.status.close_date) if closed else None,
        "repaymentMode": loan.status.settlement_mode if closed else None,
    }


def fd_to_dict(fd: FixedDeposit) -> dict[str, Any]:
    closed = isinstance(fd.status, Closed)
    return {
        "id": fd.id,
        "memberId": fd.member_id,
        "amount": _amount(fd.amount),
        "startDate": _day(fd.start_date),
        "investmentMode": fd.investment_mode,
        "status": fd.status.name,
        "closeDate": _day(fd.status.close_date) if closed else None,
        "payoutMode": fd.status.settlement_mode if closed else None,
    }


def contribution_to_dict(record: ContributionRecord) -> dict[str, Any]:
    return {
        "date": _day(record.date),
        "mode": record.mode,
        "remarks": record.remarks,
        "lateFee": _amount(record.late_fee),
        "lateFeeForgiven": record.late_fee_forgiven,
    }


def dataset_to_dict(dataset: Dataset) -> dict[str, Any]:
    """Plain JSON-compatible representation of ``dataset``."""
    return {
        "members": [member_to_dict(m) for m in dataset.members],
        "loans": [loan_to_dict(loan) for loan in dataset.loans],
        "fds": [fd_to_dict(fd) for fd in dataset.fds],
        "contributions": {
            member_id: {
                str(month_index): contribution_to_dict(record)
                for month_index, record in sorted(months.items())
            }
            for member_id, months in dataset.contributions.items()
        },
        "openingBalances": {
            "online": _amount(dataset.opening_balances.online),
            "offline": _amount(dataset.opening_balances.offline),
        },
    }


def export_dataset(dataset: Dataset) -> str:
    """Backup document for ``dataset`` (indented JSON)."""
    return json.dumps(dataset_to_dict(dataset), indent=2)


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def _parse_day(value: Any, field: str) -> date | None:
    if value in (None, ""):
        return None
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise InvalidDatasetFormatError(f"{field} must be an ISO date, got {value!r}")
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise InvalidDatasetFormatError(f"{field} must be an ISO date, got {value!r}") from e


def _parse_flag(value: Any, field: str) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise InvalidDatasetFormatError(f"{field} must be true or false, got {value!r}")
    return value


def member_from_dict(data: dict[str, Any]) -> Member:
    return Member(
        id=data["id"],
        name=data.get("name", ""),
        monthly_contribution=to_decimal(data.get("monthlyContribution"), "monthlyContribution"),
    )


def loan_from_dict(data: dict[str, Any]) -> Loan:
    status = status_from_fields(
        "Loan",
        data.get("id", ""),
        data.get("status", "active"),
        _parse_day(data.get("closeDate"), "closeDate"),
        data.get("repaymentMode"),
    )
    return Loan(
        id=data["id"],
        member_id=data["memberId"],
        amount=data.get("amount"),
        issue_date=_parse_day(data.get("issueDate"), "issueDate"),
        disbursement_mode=data.get("disbursementMode", ""),
        status=status,
    )


def fd_from_dict(data: dict[str, Any]) -> FixedDeposit:
    status = status_from_fields(
        "FixedDeposit",
        data.get("id", ""),
        data.get("status", "active"),
        _parse_day(data.get("closeDate"), "closeDate"),
        data.get("payoutMode"),
    )
    return FixedDeposit(
        id=data["id"],
        member_id=data["memberId"],
        amount=data.get("amount"),
        start_date=_parse_day(data.get("startDate"), "startDate"),
        investment_mode=data.get("investmentMode", ""),
        status=status,
    )


def contribution_from_dict(data: dict[str, Any]) -> ContributionRecord:
    return ContributionRecord(
        date=_parse_day(data.get("date"), "date"),
        mode=data.get("mode", ""),
        remarks=data.get("remarks") or "",
        late_fee=to_decimal(data.get("lateFee") or 0, "lateFee"),
        late_fee_forgiven=_parse_flag(data.get("lateFeeForgiven"), "lateFeeForgiven"),
    )


def dataset_from_dict(data: Any) -> Dataset:
    """
    Build a Dataset from its interchange representation.

    ``contributions`` and ``openingBalances`` are optional and default to
    empty / zero.
    """
    if not isinstance(data, dict):
        raise InvalidDatasetFormatError("document root must be an object")
    missing = [key for key in REQUIRED_SECTIONS if not isinstance(data.get(key), list)]
    if missing:
        raise InvalidDatasetFormatError(f"missing sections: {', '.join(missing)}")

    try:
        members = tuple(member_from_dict(m) for m in data["members"])
        loans = tuple(loan_from_dict(loan) for loan in data["loans"])
        fds = tuple(fd_from_dict(fd) for fd in data["fds"])
        contributions = {
            member_id: {
                int(month_index): contribution_from_dict(record)
                for month_index, record in (months or {}).items()
            }
            for member_id, months in (data.get("contributions") or {}).items()
        }
        opening = data.get("openingBalances") or {}
        opening_balances = OpeningBalances(
            online=to_decimal(opening.get("online", 0), "openingBalances.online"),
            offline=to_decimal(opening.get("offline", 0), "openingBalances.offline"),
        )
        return Dataset(
            members=members,
            loans=loans,
            fds=fds,
            contributions=contributions,
            opening_balances=opening_balances,
        )
    except InvalidDatasetFormatError:
        raise
    except CoopLedgerError as e:
        raise InvalidDatasetFormatError(str(e)) from e
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise InvalidDatasetFormatError(f"malformed record: {e!r}") from e


def import_dataset(text: str) -> Dataset:
    """Parse a backup document; nothing is returned unless the whole document is valid."""
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning("dataset_import_rejected", extra={"reason": "invalid_json"})
        raise InvalidDatasetFormatError("not a valid JSON document") from e

    try:
        dataset = dataset_from_dict(data)
    except InvalidDatasetFormatError as e:
        logger.warning("dataset_import_rejected", extra={"reason": e.reason})
        raise

    logger.info("dataset_imported", extra={
        "member_count": len(dataset.members),
        "loan_count": len(dataset.loans),
        "fd_count": len(dataset.fds),
    })
    return dataset
