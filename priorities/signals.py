from django.dispatch import Signal

# Sent with `key` and `store` whenever a collection value is written.
collection_replaced = Signal()
