from abc import ABC, abstractmethod

class PaymentProvider(ABC):
    @abstractmethod
    def initiate(self, phone, amount, account_reference, description):
        """Send a payment request and return the provider's acknowledgment."""
        raise NotImplementedError
