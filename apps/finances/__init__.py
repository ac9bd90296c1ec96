"""Finances app package.

Orders, memberships and the payment gateway integration: single and split
checkout, membership subscriptions, refunds, and the webhook that reconciles
gateway events into local state.
"""
