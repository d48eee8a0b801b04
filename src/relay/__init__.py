"""Inbound mail relay: HTTP service and CLI around the mail_queue coordinator."""
