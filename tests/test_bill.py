"""Tests for bill payment commands."""

from cardrecon.cli.main import cli


def test_bill_add(cli_runner, temp_db, checking_account):
    result = cli_runner.invoke(
        cli,
        [
            "--db-path",
            temp_db.database_path,
            "bill",
            "add",
            "Checking",
            "R$1,000.00",
            "--date",
            "2024-11-10",
            "--description",
            "Nubank bill",
        ],
    )

    assert result.exit_code == 0
    assert "Recorded bill payment of $1,000.00 on 2024-11-10" in result.output


def test_bill_add_with_category(cli_runner, temp_db, checking_account, category_service):
    category_service.create_category("Housing")
    category_service.create_category("Credit Card", parent_path="Housing")

    result = cli_runner.invoke(
        cli,
        [
            "--db-path",
            temp_db.database_path,
            "bill",
            "add",
            str(checking_account.id),
            "250",
            "--date",
            "2024-11-10",
            "--category",
            "Housing > Credit Card",
        ],
    )

    assert result.exit_code == 0
    assert "$250.00" in result.output


def test_bill_add_unknown_category(cli_runner, temp_db, checking_account):
    result = cli_runner.invoke(
        cli,
        ["--db-path", temp_db.database_path, "bill", "add", "Checking", "10", "--category", "Nope"],
    )

    assert result.exit_code == 1
    assert "Category 'Nope' not found" in result.output


def test_bill_add_unknown_account(cli_runner, temp_db):
    result = cli_runner.invoke(
        cli, ["--db-path", temp_db.database_path, "bill", "add", "Savings", "10"]
    )

    assert result.exit_code == 1
    assert "Account 'Savings' not found" in result.output


def test_bill_add_zero_amount(cli_runner, temp_db, checking_account):
    result = cli_runner.invoke(
        cli, ["--db-path", temp_db.database_path, "bill", "add", "Checking", "0"]
    )

    assert result.exit_code == 1
    assert "must be positive" in result.output


def test_bill_add_invalid_amount(cli_runner, temp_db, checking_account):
    result = cli_runner.invoke(
        cli, ["--db-path", temp_db.database_path, "bill", "add", "Checking", "lots"]
    )

    assert result.exit_code == 1
    assert "Could not parse amount" in result.output


def test_bill_list(cli_runner, temp_db, add_bill, expansion_service, november_cycle):
    open_id = add_bill("2024-12-10", "400.00", description="December bill")
    expanded_id = add_bill("2024-11-10", "1000.00", description="November bill")
    expansion_service.expand(november_cycle, expanded_id)

    result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "bill", "list"])

    assert result.exit_code == 0
    assert "Found 1 bill payment(s)" in result.output
    assert "December bill" in result.output
    assert "November bill" not in result.output

    result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "bill", "list", "--all"])

    assert result.exit_code == 0
    assert "Found 2 bill payment(s)" in result.output
    assert "expanded" in result.output
    assert "$1,000.00" in result.output
    assert str(open_id) in result.output


def test_bill_list_empty(cli_runner, temp_db):
    result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "bill", "list"])

    assert result.exit_code == 0
    assert "No bill payments found" in result.output
