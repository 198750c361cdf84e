"""
Tests for record editing.

Covers:
- Member add / update / delete with cascade
- Loan and fixed-deposit save / delete
- Late-fee assessment at the due-date boundary
- Contribution logging, overwrite and deletion
"""

from datetime import date
from decimal import Decimal

import pytest

from coop_kernel.domain.editing import (
    add_member,
    assess_late_fee,
    contribution_status,
    delete_contribution,
    delete_fixed_deposit,
    delete_loan,
    delete_member,
    record_contribution,
    save_fixed_deposit,
    save_loan,
    update_member,
)
from coop_kernel.domain.policy import RatePolicy
from coop_kernel.domain.records import Dataset
from coop_kernel.exceptions import (
    InvalidAmountError,
    InvalidMonthIndexError,
    MemberNotFoundError,
    MissingFieldError,
    RecordNotFoundError,
)
from tests.conftest import FY, make_dataset, make_fd, make_loan, make_member


class TestMembers:
    """Member edits."""

    def test_add_member(self):
        dataset = add_member(Dataset.empty(), "m1", "  Asha ", "1000")

        assert dataset.members[0].name == "Asha"
        assert dataset.members[0].monthly_contribution == Decimal("1000")

    def test_add_member_does_not_touch_input(self):
        original = Dataset.empty()

        add_member(original, "m1", "Asha", "1000")

        assert original.members == ()

    def test_blank_name_rejected(self):
        with pytest.raises(MissingFieldError):
            add_member(Dataset.empty(), "m1", "   ", "1000")

    @pytest.mark.parametrize("amount", ["0", "-10", "abc"])
    def test_non_positive_contribution_rejected(self, amount):
        with pytest.raises(InvalidAmountError):
            add_member(Dataset.empty(), "m1", "Asha", amount)

    def test_update_member_amount_only(self, populated_dataset):
        dataset = update_member(populated_dataset, "m1", monthly_contribution="1500")

        assert dataset.member("m1").name == "Asha"
        assert dataset.member("m1").monthly_contribution == Decimal("1500")

    def test_update_unknown_member(self, populated_dataset):
        with pytest.raises(MemberNotFoundError) as exc_info:
            update_member(populated_dataset, "nobody", name="X")

        assert exc_info.value.code == "MEMBER_NOT_FOUND"

    def test_delete_member_cascades(self, populated_dataset):
        dataset = delete_member(populated_dataset, "m2")

        assert [m.id for m in dataset.members] == ["m1"]
        assert [loan.id for loan in dataset.loans] == ["l1"]
        assert dataset.fds == ()
        assert "m2" not in dataset.contributions
        assert dataset.contribution("m1", 0) is not None

    def test_delete_member_logs_counts(self, populated_dataset, captured_logs):
        delete_member(populated_dataset, "m2")

        record = next(r for r in captured_logs() if r["message"] == "member_deleted")
        assert record["loans_removed"] == 1
        assert record["fds_removed"] == 1


class TestInstruments:
    """Loan and fixed-deposit edits."""

    def test_save_loan_inserts(self):
        dataset = make_dataset(members=(make_member(),))

        dataset = save_loan(dataset, make_loan("l9"))

        assert dataset.loan("l9") is not None

    def test_save_loan_replaces_in_place(self, populated_dataset):
        closed = make_loan("l1", "m1", "10000", close_date=date(2025, 2, 1))

        dataset = save_loan(populated_dataset, closed)

        assert [loan.id for loan in dataset.loans] == ["l1", "l2"]
        assert dataset.loan("l1").is_closed

    def test_save_loan_for_unknown_member(self, populated_dataset):
        with pytest.raises(MemberNotFoundError):
            save_loan(populated_dataset, make_loan("l9", member_id="nobody"))

    def test_delete_loan(self, populated_dataset):
        assert delete_loan(populated_dataset, "l1").loan("l1") is None

    def test_delete_unknown_loan(self, populated_dataset):
        with pytest.raises(RecordNotFoundError):
            delete_loan(populated_dataset, "missing")

    def test_save_and_delete_fixed_deposit(self, populated_dataset):
        dataset = save_fixed_deposit(populated_dataset, make_fd("f2", "m1", "3000"))

        assert [fd.id for fd in dataset.fds] == ["f1", "f2"]
        assert delete_fixed_deposit(dataset, "f2").fd("f2") is None

    def test_delete_unknown_fixed_deposit(self, populated_dataset):
        with pytest.raises(RecordNotFoundError) as exc_info:
            delete_fixed_deposit(populated_dataset, "missing")

        assert exc_info.value.code == "RECORD_NOT_FOUND"


class TestAssessLateFee:
    """Late-fee boundary at the 16th."""

    def test_before_due_date_is_on_time(self):
        result = assess_late_fee(Decimal("1000"), 0, FY, date(2024, 9, 15))

        assert not result.is_late
        assert result.late_fee == Decimal("0")
        assert result.due_date == date(2024, 9, 16)

    def test_on_due_date_is_late(self):
        result = assess_late_fee(Decimal("1000"), 0, FY, date(2024, 9, 16))

        assert result.is_late
        assert result.late_fee == Decimal("50")
        assert not result.forgiven

    def test_forgiven(self):
        result = assess_late_fee(Decimal("1000"), 4, FY, date(2025, 2, 1), forgive=True)

        assert result.is_late
        assert result.late_fee == Decimal("0")
        assert result.forgiven

    def test_forgiveness_ignored_when_on_time(self):
        result = assess_late_fee(Decimal("1000"), 0, FY, date(2024, 9, 1), forgive=True)

        assert not result.forgiven

    def test_policy_rate(self):
        policy = RatePolicy(late_fee_rate=Decimal("0.10"), due_day=10)

        result = assess_late_fee(Decimal("1000"), 0, FY, date(2024, 9, 10), policy=policy)

        assert result.late_fee == Decimal("100")


class TestContributions:
    """Contribution edits."""

    def setup_method(self):
        self.dataset = make_dataset(members=(make_member("m1", monthly="1000"),))

    def test_record_on_time(self):
        dataset = record_contribution(self.dataset, FY, "m1", 0, date(2024, 9, 10), "Paytm", "  sept ")

        record = dataset.contribution("m1", 0)
        assert record.mode == "Paytm"
        assert record.remarks == "sept"
        assert record.late_fee == Decimal("0")

    def test_record_late(self):
        dataset = record_contribution(self.dataset, FY, "m1", 0, date(2024, 9, 20), "Offline")

        assert dataset.contribution("m1", 0).late_fee == Decimal("50")

    def test_record_late_forgiven(self):
        dataset = record_contribution(
            self.dataset, FY, "m1", 0, date(2024, 9, 20), "Offline", forgive_late_fee=True,
        )

        record = dataset.contribution("m1", 0)
        assert record.late_fee == Decimal("0")
        assert record.late_fee_forgiven

    def test_overwrite_slot(self, captured_logs):
        dataset = record_contribution(self.dataset, FY, "m1", 0, date(2024, 9, 20), "Offline")
        dataset = record_contribution(dataset, FY, "m1", 0, date(2024, 9, 1), "Paytm")

        assert dataset.contribution("m1", 0).late_fee == Decimal("0")
        messages = [r["message"] for r in captured_logs()]
        assert "contribution_logged" in messages
        assert "contribution_updated" in messages

    def test_unknown_member(self):
        with pytest.raises(MemberNotFoundError):
            record_contribution(self.dataset, FY, "ghost", 0, date(2024, 9, 1), "Paytm")

    def test_bad_month_index(self):
        with pytest.raises(InvalidMonthIndexError):
            record_contribution(self.dataset, FY, "m1", 12, date(2024, 9, 1), "Paytm")

    def test_missing_date(self):
        with pytest.raises(MissingFieldError):
            record_contribution(self.dataset, FY, "m1", 0, None, "Paytm")

    def test_delete_contribution(self):
        dataset = record_contribution(self.dataset, FY, "m1", 2, date(2024, 11, 1), "BHIM")

        assert delete_contribution(dataset, "m1", 2).contribution("m1", 2) is None

    def test_delete_absent_contribution_is_noop(self):
        assert delete_contribution(self.dataset, "m1", 2) is self.dataset

    def test_contribution_status_grid(self):
        dataset = record_contribution(self.dataset, FY, "m1", 2, date(2024, 11, 1), "BHIM")

        status = contribution_status(dataset, "m1")

        assert len(status) == 12
        assert [i for i, slot in enumerate(status) if slot is not None] == [2]
