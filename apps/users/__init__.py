"""Users app package.

Defines the account model used as AUTH_USER_MODEL (``users.CustomUser``)
and the user directory the payment orchestrators resolve participants
and payment-gateway customers through.
"""
