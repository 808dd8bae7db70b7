"""Tests for the command line interface."""

import csv

import pytest
from typer.testing import CliRunner

from split_ledger.cli import CSV_HEADER, app

runner = CliRunner()


@pytest.fixture(autouse=True)
def ledger_env(tmp_path, monkeypatch):
    """Point the CLI at a temporary data directory with cheap hashing."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("LEDGER_DATA_DIR", str(tmp_path / "ledger"))
    monkeypatch.setenv("CREDENTIAL_ITERATIONS", "1000")
    return tmp_path


def register(name: str, email: str, phone: str = "5551234567", password: str = "pw"):
    return runner.invoke(
        app,
        [
            "register",
            "--name",
            name,
            "--email",
            email,
            "--phone",
            phone,
            "--password",
            password,
        ],
    )


def login_args(email: str, password: str = "pw") -> list[str]:
    return ["--email", email, "--password", password]


@pytest.fixture
def people():
    """Register Alice and Bob."""
    assert register("Alice", "alice@example.com").exit_code == 0
    assert register("Bob", "bob@example.com").exit_code == 0


class TestRegister:
    def test_register_and_list(self):
        result = register("Alice", "alice@example.com")

        assert result.exit_code == 0
        assert "User registered successfully" in result.output
        assert "ID: 1" in result.output

        result = runner.invoke(app, ["users"])
        assert result.exit_code == 0
        assert "Alice" in result.output
        assert "alice@example.com" in result.output

    def test_no_users(self):
        result = runner.invoke(app, ["users"])

        assert result.exit_code == 0
        assert "No users registered yet" in result.output

    def test_invalid_email(self):
        """Option validation fails before anything is stored."""
        result = register("Alice", "not-an-email")

        assert result.exit_code != 0
        assert "No users registered yet" in runner.invoke(app, ["users"]).output

    def test_invalid_phone(self):
        result = register("Alice", "alice@example.com", phone="12ab")

        assert result.exit_code != 0

    def test_duplicate_email(self, people):
        result = register("Alicia", "alice@example.com")

        assert result.exit_code == 1
        assert "already registered" in result.output


class TestExpenses:
    def test_add_expense_and_balance(self, people):
        """Alice pays $100 split with Bob; Bob owes Alice $50."""
        result = runner.invoke(
            app,
            ["add-expense", "-d", "Dinner", "-a", "100", "-p", "2"]
            + login_args("alice@example.com"),
        )

        assert result.exit_code == 0, result.output
        assert "Expense added successfully" in result.output

        result = runner.invoke(app, ["balance"] + login_args("bob@example.com"))
        assert result.exit_code == 0
        assert "You owe Alice" in result.output
        assert "50.00" in result.output

        result = runner.invoke(app, ["balance"] + login_args("alice@example.com"))
        assert "Bob owes you" in result.output

    def test_exact_split_values(self, people):
        result = runner.invoke(
            app,
            [
                "add-expense",
                "-d",
                "Groceries",
                "-a",
                "40",
                "-m",
                "exact",
                "-p",
                "2",
                "--value",
                "30",
                "--value",
                "10",
            ]
            + login_args("alice@example.com"),
        )

        assert result.exit_code == 0, result.output

        result = runner.invoke(app, ["balance"] + login_args("bob@example.com"))
        assert "30.00" in result.output

    def test_rejected_split(self, people):
        result = runner.invoke(
            app,
            [
                "add-expense",
                "-d",
                "Groceries",
                "-a",
                "40",
                "-m",
                "exact",
                "-p",
                "2",
                "--value",
                "30",
                "--value",
                "5",
            ]
            + login_args("alice@example.com"),
        )

        assert result.exit_code == 1
        assert "Error" in result.output

        result = runner.invoke(
            app, ["expenses", "--all"] + login_args("bob@example.com")
        )
        assert "No expenses recorded yet" in result.output

    def test_wrong_password(self, people):
        result = runner.invoke(
            app, ["balance"] + login_args("alice@example.com", "nope")
        )

        assert result.exit_code == 1
        assert "Invalid email or password" in result.output

    def test_no_balances(self, people):
        result = runner.invoke(app, ["balance"] + login_args("alice@example.com"))

        assert result.exit_code == 0
        assert "No balances to show" in result.output

    def test_list_expenses(self, people):
        runner.invoke(
            app,
            ["add-expense", "-d", "Taxi", "-a", "30", "-p", "2"]
            + login_args("alice@example.com"),
        )

        result = runner.invoke(app, ["expenses"] + login_args("bob@example.com"))

        assert result.exit_code == 0
        assert "Taxi" in result.output
        assert "15.00" in result.output


class TestExport:
    def test_export_csv(self, people, ledger_env):
        runner.invoke(
            app,
            ["add-expense", "-d", "Dinner, with wine", "-a", "90", "-p", "2"]
            + login_args("alice@example.com"),
        )
        target = ledger_env / "out.csv"

        result = runner.invoke(
            app, ["export", str(target)] + login_args("bob@example.com")
        )

        assert result.exit_code == 0, result.output
        with target.open(newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))

        assert rows[0] == CSV_HEADER
        assert [row[1] for row in rows[1:]] == ["Dinner, with wine"] * 2
        assert [(row[5], row[6], row[7]) for row in rows[1:]] == [
            ("2", "Bob", "45.00"),
            ("1", "Alice", "45.00"),
        ]

    def test_export_default_filename(self, people, ledger_env):
        result = runner.invoke(app, ["export"] + login_args("alice@example.com"))

        assert result.exit_code == 0, result.output
        assert (ledger_env / "balance.csv").exists()
