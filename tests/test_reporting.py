from datetime import date, datetime, timedelta

import pytest

from expense_tracker.exceptions import ValidationError
from expense_tracker.services import reporting


# -----------------------------
# Pure folds
# -----------------------------

def test_category_totals_with_unknown_bucket():
    rows = [
        {"category_id": "a", "category_name": "A", "category_color": "#111111", "amount": 10},
        {"category_id": "a", "category_name": "A", "category_color": "#111111", "amount": 5},
        {"category_id": "gone", "category_name": None, "category_color": None, "amount": 3},
    ]

    result = reporting.aggregate_by_category(rows)

    assert result == [
        {"category_id": "a", "category_name": "A", "category_color": "#111111", "total_amount": 15.0, "expense_count": 2},
        {"category_id": "unknown", "category_name": "Unknown Category", "category_color": None,
         "total_amount": 3.0, "expense_count": 1},
    ]


def test_category_totals_empty():
    assert reporting.aggregate_by_category([]) == []


def test_month_totals_newest_first_and_capped():
    rows = [{"date": date(2023, m, 1), "amount": m} for m in range(1, 13)]
    rows += [{"date": date(2024, 1, 15), "amount": "2.50"}, {"date": date(2024, 1, 20), "amount": "0.50"}]

    result = reporting.aggregate_by_month(rows)

    assert len(result) == 12
    assert result[0] == {"month": "2024-01", "total_amount": 3.0, "expense_count": 2}
    assert result[-1]["month"] == "2023-02"


def test_quarter_totals_zero_filled():
    rows = [
        {"date": date(2024, 2, 1), "amount": 10},
        {"date": date(2024, 3, 31), "amount": 5},
        {"date": date(2024, 11, 2), "amount": 1},
        {"date": date(2023, 5, 5), "amount": 100},
    ]

    result = reporting.aggregate_by_quarter(rows, 2024)

    assert [q["quarter"] for q in result] == ["Q1", "Q2", "Q3", "Q4"]
    assert [q["total_amount"] for q in result] == [15.0, 0.0, 0.0, 1.0]


def test_day_totals_cover_whole_month():
    rows = [{"date": date(2024, 2, 29), "amount": 7}]

    result = reporting.aggregate_by_day(rows, 2024, 2)

    assert len(result) == 29
    assert result[0] == {"date": "2024-02-01", "total_amount": 0.0, "expense_count": 0}
    assert result[-1] == {"date": "2024-02-29", "total_amount": 7.0, "expense_count": 1}


@pytest.mark.parametrize("period, expected", [
    ("day", date(2024, 8, 14)),
    ("month", date(2024, 8, 1)),
    ("quarter", date(2024, 7, 1)),
])
def test_period_start(period, expected):
    assert reporting.period_start(period, date(2024, 8, 14)) == expected


def test_invalid_period():
    with pytest.raises(ValidationError):
        reporting.period_start("year", date(2024, 1, 1))


# -----------------------------
# Queries
# -----------------------------

def test_stats_for_owner_and_everyone(db, basic_user, other_user, travel, make_expense):
    today = date(2024, 8, 14)
    make_expense(basic_user, travel, amount="100.00", on=date(2024, 8, 2))
    make_expense(basic_user, travel, amount="50.00", on=date(2024, 7, 3), status="approved")
    make_expense(basic_user, travel, amount="25.00", on=date(2024, 3, 1), status="approved")
    make_expense(other_user, travel, amount="10.00", on=date(2024, 8, 5))

    mine = reporting.expense_stats(db, owner_id=basic_user.id, today=today)
    everyone = reporting.expense_stats(db, today=today)

    assert mine == {
        "current_quarter_expenses": 150.0,
        "this_month_expenses": 100.0,
        "pending_expenses": 100.0,
        "approved_expenses": 75.0,
    }
    assert everyone["this_month_expenses"] == 110.0
    assert everyone["pending_expenses"] == 110.0


def test_stats_without_expenses(db, basic_user):
    assert reporting.expense_stats(db, owner_id=basic_user.id, today=date(2024, 1, 1)) == {
        "current_quarter_expenses": 0.0,
        "this_month_expenses": 0.0,
        "pending_expenses": 0.0,
        "approved_expenses": 0.0,
    }


def test_category_breakdown_from_database(db, basic_user, travel, meals, make_expense):
    make_expense(basic_user, travel, amount="10.00")
    make_expense(basic_user, travel, amount="5.00")
    make_expense(basic_user, meals, amount="20.00")

    result = reporting.expenses_by_category(db, owner_id=basic_user.id)

    assert [(r["category_name"], r["total_amount"], r["expense_count"]) for r in result] == [
        ("Meals", 20.0, 1),
        ("Travel", 15.0, 2),
    ]


def test_period_breakdown_limits_dates(db, basic_user, travel, make_expense):
    make_expense(basic_user, travel, amount="10.00", on=date(2024, 8, 14))
    make_expense(basic_user, travel, amount="5.00", on=date(2024, 8, 1))
    make_expense(basic_user, travel, amount="1.00", on=date(2024, 6, 30))

    today = date(2024, 8, 14)
    assert reporting.period_breakdown(db, "day", basic_user.id, today)[0]["total_amount"] == 10.0
    assert reporting.period_breakdown(db, "month", basic_user.id, today)[0]["total_amount"] == 15.0
    assert reporting.period_breakdown(db, "quarter", basic_user.id, today)[0]["total_amount"] == 15.0


def test_daily_totals_rejects_bad_month(db):
    with pytest.raises(ValidationError):
        reporting.daily_totals(db, 2024, 13)


def test_quarterly_totals_from_database(db, basic_user, travel, make_expense):
    make_expense(basic_user, travel, amount="10.00", on=date(2024, 5, 10))

    result = reporting.quarterly_totals(db, 2024, owner_id=basic_user.id)

    assert result[1] == {"quarter": "Q2", "total_amount": 10.0, "expense_count": 1}


def test_report_filters_and_totals(db, basic_user, other_user, travel, meals, make_expense):
    make_expense(basic_user, travel, amount="10.00", on=date(2024, 5, 1))
    make_expense(basic_user, meals, amount="20.00", on=date(2024, 5, 20), status="approved")
    make_expense(other_user, travel, amount="40.00", on=date(2024, 6, 1))

    report = reporting.expense_report(db, start_date=date(2024, 5, 1), end_date=date(2024, 5, 31))
    assert report["expense_count"] == 2
    assert report["total_amount"] == 30.0
    assert [e["date"] for e in report["expenses"]] == [date(2024, 5, 20), date(2024, 5, 1)]

    only_travel = reporting.expense_report(db, category_id=travel.id, user_id=other_user.id)
    assert only_travel["total_amount"] == 40.0


def test_database_stats(db, basic_user, admin, travel, make_expense):
    make_expense(basic_user, travel)
    make_expense(basic_user, travel, status="approved")

    stats = reporting.database_stats(db, now=datetime.utcnow() + timedelta(hours=1))

    assert stats["total_expenses"] == 2
    assert stats["total_users"] == 2
    assert stats["total_categories"] == 1
    assert sorted((s["status"], s["count"]) for s in stats["expenses_by_status"]) == [
        ("approved", 1), ("pending", 1),
    ]
