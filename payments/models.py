from django.db import models


class Transaction(models.Model):
    class Status(models.TextChoices):
        PENDING = 'PENDING', 'Pending'
        SUCCESS = 'SUCCESS', 'Success'
        FAILED = 'FAILED', 'Failed'

    phone_number = models.CharField(max_length=20, blank=True, null=True)  # e.g. 2547XXXXXXXX
    amount = models.PositiveIntegerField(blank=True, null=True)
    account_reference = models.CharField(max_length=64, blank=True, null=True)
    description = models.CharField(max_length=128, blank=True, null=True)

    # Correlation identifiers returned by Daraja and echoed in the callback
    merchant_request_id = models.CharField(max_length=128, blank=True, null=True)
    checkout_request_id = models.CharField(max_length=128, unique=True, blank=True, null=True)
    gateway_response = models.JSONField(blank=True, null=True)

    # Untyped (null) for raw callbacks that carry no stkCallback
    status = models.CharField(max_length=10, choices=Status.choices, blank=True, null=True)
    is_orphan = models.BooleanField(default=False)

    result_code = models.CharField(max_length=16, blank=True, null=True)
    result_desc = models.CharField(max_length=256, blank=True, null=True)
    callback_metadata = models.JSONField(blank=True, null=True)
    callback_received_at = models.DateTimeField(blank=True, null=True)
    mpesa_receipt_number = models.CharField(max_length=100, blank=True, null=True)
    amount_paid = models.DecimalField(max_digits=12, decimal_places=2, blank=True, null=True)

    raw_callback = models.JSONField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-id']

    def __str__(self):
        return f"{self.phone_number} - {self.amount} - {self.status}"

    @property
    def is_terminal(self):
        return self.status in (self.Status.SUCCESS, self.Status.FAILED)

    def to_dict(self):
        data = {
            "id": self.id,
            "phone": self.phone_number,
            "amount": self.amount,
            "accountRef": self.account_reference,
            "desc": self.description,
            "request": self.gateway_response,
            "status": self.status,
            "orphan": self.is_orphan,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "stkCallback": None,
            "mpesaReceiptNumber": self.mpesa_receipt_number,
            "amountPaid": float(self.amount_paid) if self.amount_paid is not None else None,
        }
        if self.result_code is not None:
            data["stkCallback"] = {
                "MerchantRequestID": self.merchant_request_id,
                "CheckoutRequestID": self.checkout_request_id,
                "ResultCode": self.result_code,
                "ResultDesc": self.result_desc,
                "meta": self.callback_metadata or {},
                "receivedAt": self.callback_received_at.isoformat() if self.callback_received_at else None,
            }
        if self.raw_callback is not None:
            data["rawCallback"] = self.raw_callback
        return data
