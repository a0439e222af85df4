from payments.models import Transaction

RECENT_LIMIT = 50


def recent_transactions(limit=RECENT_LIMIT):
    """Newest-first window of the most recent transactions."""
    return list(Transaction.objects.order_by('-id')[:limit])
