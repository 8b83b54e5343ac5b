"""Tests for the account and expense flows."""

from datetime import datetime

import pytest

from expense_tracker.errors import (
    AuthenticationFailedError,
    InvalidDataError,
    NotFoundError,
    SessionRequiredError,
    UserAlreadyExistsError,
)
from expense_tracker.models import ExpenseCategory
from expense_tracker.orchestrator import AccountFlow, ExpenseFlow, create_app_components


EMAIL = "mario.rossi@example.com"
PASSWORD = "s3cret!"


class TestAccountFlow:
    """Tests for registration, login and profile management."""

    def test_register_stores_digest(self, account_flow, hasher):
        """Test the plaintext password never reaches the stored user."""
        user = account_flow.register_user("Mario", "Rossi", EMAIL, PASSWORD, 25)
        assert user.id is not None
        assert user.password_hash == hasher.hash(PASSWORD)
        assert PASSWORD not in user.password_hash

    def test_register_does_not_log_in(self, account_flow):
        """Test registration leaves the session empty."""
        account_flow.register_user("Mario", "Rossi", EMAIL, PASSWORD, 25)
        assert account_flow.session.is_authenticated is False

    def test_register_duplicate_email(self, account_flow):
        """Test registering the same email twice."""
        account_flow.register_user("Mario", "Rossi", EMAIL, PASSWORD, 25)
        with pytest.raises(UserAlreadyExistsError):
            account_flow.register_user("Maria", "Verdi", EMAIL, "other", 30)

    @pytest.mark.parametrize("fields", [
        ("", "Rossi", EMAIL, PASSWORD, 25),
        ("Mario", "Rossi", "mario.rossi", PASSWORD, 25),
        ("Mario", "Rossi", EMAIL, "", 25),
        ("Mario", "Rossi", EMAIL, PASSWORD, 13),
    ])
    def test_register_invalid_data(self, account_flow, user_storage, fields):
        """Test invalid registrations store nothing."""
        with pytest.raises(InvalidDataError):
            account_flow.register_user(*fields)
        assert user_storage.get_user_by_id(1) is None

    def test_login(self, account_flow, logged_in_user):
        """Test a successful login starts the session."""
        assert account_flow.session.user == logged_in_user
        assert account_flow.session.user_id == logged_in_user.id

    def test_login_wrong_password(self, account_flow):
        """Test a wrong password fails and leaves the session empty."""
        account_flow.register_user("Mario", "Rossi", EMAIL, PASSWORD, 25)
        with pytest.raises(AuthenticationFailedError):
            account_flow.login(EMAIL, "wrong")
        assert account_flow.session.user is None

    def test_login_unknown_email(self, account_flow):
        """Test unknown email and wrong password are indistinguishable."""
        with pytest.raises(AuthenticationFailedError, match="Invalid email or password"):
            account_flow.login("nobody@example.com", PASSWORD)

    def test_login_blank_password(self, account_flow):
        """Test a blank password is rejected before lookup."""
        with pytest.raises(InvalidDataError):
            account_flow.login(EMAIL, "  ")

    def test_logout(self, account_flow, logged_in_user):
        """Test logout clears the session and can be repeated."""
        account_flow.logout()
        assert account_flow.session.is_authenticated is False
        account_flow.logout()

    def test_update_profile(self, account_flow, user_storage, hasher, logged_in_user):
        """Test every field is replaced in storage and in the session."""
        updated = account_flow.update_profile(
            "Luigi", "Bianchi", "luigi.bianchi@example.com", "n3w-pass", 40,
        )
        assert updated.id == logged_in_user.id
        assert updated.password_hash == hasher.hash("n3w-pass")
        assert account_flow.session.user == updated
        assert user_storage.get_user_by_id(logged_in_user.id) == updated

        account_flow.logout()
        account_flow.login("luigi.bianchi@example.com", "n3w-pass")

    def test_update_profile_invalid_is_atomic(self, account_flow, user_storage, logged_in_user):
        """Test a rejected update changes neither the session nor storage."""
        with pytest.raises(InvalidDataError):
            account_flow.update_profile("Luigi", "Bianchi", "bad-email", "n3w-pass", 40)
        assert account_flow.session.user == logged_in_user
        assert user_storage.get_user_by_id(logged_in_user.id) == logged_in_user

    def test_update_profile_taken_email(self, account_flow, logged_in_user):
        """Test switching to another user's email is refused."""
        account_flow.register_user("Maria", "Verdi", "maria.verdi@example.com", "pw", 30)
        with pytest.raises(UserAlreadyExistsError):
            account_flow.update_profile("Mario", "Rossi", "maria.verdi@example.com", PASSWORD, 25)
        assert account_flow.session.user.email == EMAIL

    def test_update_profile_requires_session(self, account_flow):
        """Test profile updates need a login."""
        with pytest.raises(SessionRequiredError):
            account_flow.update_profile("Mario", "Rossi", EMAIL, PASSWORD, 25)

    def test_find_current_user(self, account_flow, logged_in_user):
        """Test the current user is re-read from storage."""
        assert account_flow.find_current_user() == logged_in_user

    def test_find_current_user_deleted_row(self, account_flow, user_storage, logged_in_user):
        """Test a session pointing at a removed row reports NotFoundError."""
        user_storage.delete_user(logged_in_user.id)
        with pytest.raises(NotFoundError):
            account_flow.find_current_user()

    def test_delete_current_user(self, account_flow, user_storage, logged_in_user):
        """Test account deletion removes the row and ends the session."""
        account_flow.delete_current_user()
        assert account_flow.session.is_authenticated is False
        assert user_storage.get_user_by_id(logged_in_user.id) is None
        with pytest.raises(AuthenticationFailedError):
            account_flow.login(EMAIL, PASSWORD)

    def test_delete_requires_session(self, account_flow):
        """Test deleting needs a login."""
        with pytest.raises(SessionRequiredError):
            account_flow.delete_current_user()


class TestExpenseFlow:
    """Tests for the expense use cases."""

    def add(self, expense_flow, **overrides):
        fields = dict(
            name="Dinner",
            category=ExpenseCategory.RESTAURANTS,
            description="Pizza with friends",
            amount=32.0,
            timestamp=datetime(2025, 3, 10, 20, 0),
        )
        fields.update(overrides)
        return expense_flow.add_expense(**fields)

    def test_add_binds_to_logged_in_user(self, expense_flow, logged_in_user):
        """Test new expenses belong to the session user."""
        expense = self.add(expense_flow)
        assert expense.id is not None
        assert expense.user_id == logged_in_user.id

    def test_add_requires_session(self, expense_flow):
        """Test adding needs a login."""
        with pytest.raises(SessionRequiredError):
            self.add(expense_flow)

    def test_add_invalid(self, expense_flow, logged_in_user):
        """Test invalid fields are rejected before storage."""
        with pytest.raises(InvalidDataError):
            self.add(expense_flow, amount=0)
        with pytest.raises(NotFoundError):
            expense_flow.list_expenses()

    def test_list_expenses(self, expense_flow, logged_in_user):
        """Test listing returns the user's expenses in insertion order."""
        first = self.add(expense_flow, name="First")
        second = self.add(expense_flow, name="Second")
        assert expense_flow.list_expenses() == [first, second]

    def test_list_empty_is_not_found(self, expense_flow, logged_in_user):
        """Test an empty listing raises NotFoundError."""
        with pytest.raises(NotFoundError):
            expense_flow.list_expenses()

    def test_list_requires_session(self, expense_flow):
        """Test listing needs a login."""
        with pytest.raises(SessionRequiredError):
            expense_flow.list_expenses()

    def test_update_expense(self, expense_flow, logged_in_user):
        """Test an update overwrites every editable field."""
        expense = self.add(expense_flow)
        updated = expense_flow.update_expense(
            expense.id, "Train", "Travel", "Ticket to Rome", 45.5, datetime(2025, 4, 2, 8, 15),
        )
        assert updated.category == ExpenseCategory.TRAVEL
        assert expense_flow.list_expenses() == [updated]

    def test_update_missing_expense(self, expense_flow, logged_in_user):
        """Test updating an unknown id raises NotFoundError."""
        with pytest.raises(NotFoundError):
            expense_flow.update_expense(
                99, "Train", "Travel", "Ticket", 10.0, datetime(2025, 4, 2),
            )

    def test_update_invalid_id(self, expense_flow, logged_in_user):
        """Test a non-positive id is invalid data."""
        with pytest.raises(InvalidDataError):
            expense_flow.update_expense(
                0, "Train", "Travel", "Ticket", 10.0, datetime(2025, 4, 2),
            )

    def test_delete_twice(self, expense_flow, logged_in_user):
        """Test deleting the same expense twice is not an error."""
        expense = self.add(expense_flow)
        expense_flow.delete_expense(expense.id)
        expense_flow.delete_expense(expense.id)
        with pytest.raises(NotFoundError):
            expense_flow.list_expenses()

    def test_delete_requires_session(self, expense_flow):
        """Test deleting needs a login."""
        with pytest.raises(SessionRequiredError):
            expense_flow.delete_expense(1)

    def test_search_by_category(self, expense_flow, logged_in_user):
        """Test category search returns matches or raises NotFoundError."""
        dinner = self.add(expense_flow)
        self.add(expense_flow, name="Gym", category=ExpenseCategory.SPORT)

        assert expense_flow.search_expenses_by_category("Restaurants") == [dinner]
        with pytest.raises(NotFoundError):
            expense_flow.search_expenses_by_category(ExpenseCategory.HOBBY)

    def test_search_by_unknown_category(self, expense_flow, logged_in_user):
        """Test an unknown category is invalid data, not an empty result."""
        with pytest.raises(InvalidDataError):
            expense_flow.search_expenses_by_category("Groceries")

    def test_search_by_date(self, expense_flow, logged_in_user):
        """Test date search returns matches or raises NotFoundError."""
        dinner = self.add(expense_flow)
        assert expense_flow.search_expenses_by_date(datetime(2025, 3, 10, 20, 0)) == [dinner]
        with pytest.raises(NotFoundError):
            expense_flow.search_expenses_by_date(datetime(2025, 3, 11, 20, 0))

    def test_aggregates(self, expense_flow, logged_in_user):
        """Test monthly average and annual total through the flow."""
        self.add(expense_flow, amount=10.0, timestamp=datetime(2025, 3, 1))
        self.add(expense_flow, amount=20.0, timestamp=datetime(2025, 3, 15))
        self.add(expense_flow, amount=70.0, timestamp=datetime(2025, 6, 1))

        assert expense_flow.monthly_average(2025, 3) == 15.0
        assert expense_flow.monthly_average(2025, 5) == 0.0
        assert expense_flow.annual_total(2025) == 100.0
        assert expense_flow.annual_total(2026) == 0.0

    def test_aggregates_require_session(self, expense_flow):
        """Test aggregates need a login."""
        with pytest.raises(SessionRequiredError):
            expense_flow.annual_total(2025)

    def test_other_users_expenses_hidden(self, account_flow, expense_flow, logged_in_user):
        """Test a second user sees none of the first user's expenses."""
        self.add(expense_flow)
        account_flow.logout()
        account_flow.register_user("Maria", "Verdi", "maria.verdi@example.com", "pw", 30)
        account_flow.login("maria.verdi@example.com", "pw")

        with pytest.raises(NotFoundError):
            expense_flow.list_expenses()
        assert expense_flow.annual_total(2025) == 0.0

    def test_other_users_expenses_untouchable(self, account_flow, expense_flow, logged_in_user):
        """Test a second user can neither update nor delete the first user's expense."""
        dinner = self.add(expense_flow)
        account_flow.logout()
        account_flow.register_user("Maria", "Verdi", "maria.verdi@example.com", "pw", 30)
        account_flow.login("maria.verdi@example.com", "pw")

        with pytest.raises(NotFoundError):
            expense_flow.update_expense(
                dinner.id, "Overwritten", "Other", "Not mine", 1.0, datetime(2025, 1, 1),
            )
        expense_flow.delete_expense(dinner.id)

        account_flow.logout()
        account_flow.login(EMAIL, PASSWORD)
        assert expense_flow.list_expenses() == [dinner]


class TestCreateAppComponents:
    """Tests for the composition root."""

    def test_components_share_session(self, database_url):
        """Test both flows act for the same logged-in user."""
        account_flow, expense_flow, gateway = create_app_components(
            database_url, configure_logs=False,
        )
        try:
            assert isinstance(account_flow, AccountFlow)
            assert isinstance(expense_flow, ExpenseFlow)
            assert gateway.url == database_url

            account_flow.register_user("Mario", "Rossi", EMAIL, PASSWORD, 25)
            user = account_flow.login(EMAIL, PASSWORD)
            expense = expense_flow.add_expense(
                "Dinner", "Restaurants", "Pizza", 20.0, datetime(2025, 3, 10, 20, 0),
            )
            assert expense.user_id == user.id
        finally:
            gateway.close()

    def test_data_survives_restart(self, database_url):
        """Test a second set of components reads what the first wrote."""
        account_flow, _, gateway = create_app_components(database_url, configure_logs=False)
        account_flow.register_user("Mario", "Rossi", EMAIL, PASSWORD, 25)
        gateway.close()

        account_flow, _, gateway = create_app_components(database_url, configure_logs=False)
        try:
            assert account_flow.login(EMAIL, PASSWORD).email == EMAIL
        finally:
            gateway.close()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
