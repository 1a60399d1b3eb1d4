from datetime import date

import pytest

from ledger_reconcile.bill_updates import (
    BillMatch,
    BillUpdateApproval,
    apply_bill_updates,
    propose_bill_updates,
    record_bill_match,
)

def test_record_bill_match():
    matches = record_bill_match({}, 'electric', -104.37, date(2025, 1, 20))
    assert matches == {'electric': BillMatch(-104.37, date(2025, 1, 20))}

    later = record_bill_match(matches, 'electric', -98.00, date(2025, 2, 20))
    assert later['electric'] == BillMatch(-98.00, date(2025, 2, 20))
    assert matches['electric'].amount == -104.37

    earlier = record_bill_match(later, 'electric', -90.00, date(2025, 1, 1))
    assert earlier['electric'].amount == -98.00

    same_day = record_bill_match(later, 'electric', -95.00, date(2025, 2, 20))
    assert same_day['electric'].amount == -98.00

@pytest.fixture
def proposals(sample_bills):
    matches = {
        'electric': BillMatch(-104.37, date(2025, 1, 20)),
        'netflix': BillMatch(-15.49, date(2025, 1, 12)),
    }
    return propose_bill_updates(sample_bills, matches)

@pytest.mark.dependency()
class TestProposals:
    """Test suite for bill update proposals"""

    @pytest.mark.dependency()
    def test_one_proposal_per_matched_bill(self, proposals):
        assert [proposal.bill_id for proposal in proposals] == ['netflix', 'electric']

    @pytest.mark.dependency(depends=["TestProposals::test_one_proposal_per_matched_bill"])
    def test_proposal_details(self, proposals):
        netflix, electric = proposals
        assert netflix.proposed_next_due_date == date(2025, 2, 12)
        assert netflix.amount_changed is False
        assert netflix.amount_difference == 0.0

        assert electric.imported_amount == -104.37
        assert electric.imported_date == date(2025, 1, 20)
        assert electric.proposed_next_due_date == date(2025, 2, 20)
        assert electric.amount_changed is True
        assert electric.percent_difference == pytest.approx(4.37)

    def test_invalid_schedule(self, make_bill, caplog):
        bill = make_bill('odd', 'Odd Bill', -10.00, frequency='fortnightly',
                         next_due_date=date(2025, 1, 5))
        result = propose_bill_updates([bill], {'odd': BillMatch(-10.00, date(2025, 1, 5))})

        assert len(result) == 1
        assert result[0].proposed_next_due_date is None
        assert "Cannot propose next due date" in caplog.text

    def test_no_matches(self, sample_bills):
        assert propose_bill_updates(sample_bills, {}) == []

class TestApplyUpdates:
    """Test suite for applying approved bill updates"""

    def test_apply_both(self, sample_bills, proposals):
        updated = apply_bill_updates(sample_bills, proposals, [BillUpdateApproval('electric')])
        electric = updated[2]

        assert electric.next_due_date == date(2025, 2, 20)
        assert electric.amount == -104.37
        assert updated[:2] == sample_bills[:2]
        assert sample_bills[2].amount == -100.00

    def test_date_only(self, sample_bills, proposals):
        approval = BillUpdateApproval('electric', update_amount=False)
        electric = apply_bill_updates(sample_bills, proposals, [approval])[2]

        assert electric.next_due_date == date(2025, 2, 20)
        assert electric.amount == -100.00

    def test_amount_only(self, sample_bills, proposals):
        approval = BillUpdateApproval('electric', update_date=False)
        electric = apply_bill_updates(sample_bills, proposals, [approval])[2]

        assert electric.next_due_date == date(2025, 1, 20)
        assert electric.amount == -104.37

    def test_no_approval(self, sample_bills, proposals):
        assert apply_bill_updates(sample_bills, proposals, []) == sample_bills

    def test_approval_without_proposal(self, sample_bills, proposals):
        assert apply_bill_updates(sample_bills, proposals, [BillUpdateApproval('rent')]) == sample_bills
