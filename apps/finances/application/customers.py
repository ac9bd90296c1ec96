"""Gateway customer resolution shared by the payment flows."""

from apps.finances.gateway import PaymentGateway
from apps.users.repositories import Account, UserDirectory


def ensure_customer(account: Account, user_directory: UserDirectory, gateway: PaymentGateway) -> str:
    """
    Return the account's gateway customer id, creating the customer first
    if the account has none yet.
    """
    if account.stripe_customer_id:
        return account.stripe_customer_id
    customer_id = gateway.create_customer(account.email, {'user_id': str(account.id)})
    return user_directory.attach_customer(account.id, customer_id)
