"""
订阅计费服务测试
"""
import pytest
from unittest.mock import patch

from reportai.services.auth_service import AuthService
from reportai.services.billing_service import BillingService, BillingNotConfiguredError
from reportai.services.user_service import UserService


def subscription(subscription_id="sub_123", client_secret="pi_secret"):
    return {
        "id": subscription_id,
        "latest_invoice": {"payment_intent": {"client_secret": client_secret}},
    }


@pytest.fixture
def billing(database):
    return BillingService(UserService(database), api_key="sk_test_123", price_id="price_premium")


def test_not_configured(database, user, monkeypatch):
    monkeypatch.delenv("STRIPE_SECRET_KEY", raising=False)
    with pytest.raises(BillingNotConfiguredError):
        BillingService(UserService(database)).create_subscription(user)


def test_create_subscription(billing, database, user):
    with patch("reportai.services.billing_service.stripe.Customer.create", return_value={"id": "cus_1"}) as create_customer, \
            patch("reportai.services.billing_service.stripe.Subscription.create", return_value=subscription()) as create_subscription:
        result = billing.create_subscription(user)

    assert result == {"subscription_id": "sub_123", "client_secret": "pi_secret"}
    create_customer.assert_called_once_with(email="alice@example.com", name="Alice Smith")
    kwargs = create_subscription.call_args.kwargs
    assert kwargs["customer"] == "cus_1"
    assert kwargs["items"] == [{"price": "price_premium"}]
    assert kwargs["payment_behavior"] == "default_incomplete"

    stored = AuthService(database).get_user(user.id)
    assert stored.stripe_customer_id == "cus_1"
    assert stored.stripe_subscription_id == "sub_123"


def test_existing_subscription_is_reused(billing, database, user):
    UserService(database).update_stripe_info(user.id, "cus_1", "sub_existing")
    stored = AuthService(database).get_user(user.id)

    with patch("reportai.services.billing_service.stripe.Subscription.retrieve",
               return_value=subscription("sub_existing", None)) as retrieve, \
            patch("reportai.services.billing_service.stripe.Customer.create") as create_customer:
        result = billing.create_subscription(stored)

    assert result == {"subscription_id": "sub_existing", "client_secret": None}
    retrieve.assert_called_once_with("sub_existing", expand=["latest_invoice.payment_intent"])
    create_customer.assert_not_called()


def test_customer_kept_when_subscription_fails(billing, database, user):
    with patch("reportai.services.billing_service.stripe.Customer.create", return_value={"id": "cus_1"}), \
            patch("reportai.services.billing_service.stripe.Subscription.create", side_effect=RuntimeError("card declined")):
        with pytest.raises(RuntimeError):
            billing.create_subscription(user)

    stored = AuthService(database).get_user(user.id)
    assert stored.stripe_customer_id == "cus_1"
    assert stored.stripe_subscription_id is None
