import stripe

from config import Settings


class PaymentGatewayError(Exception):
    pass


def create_payment_intent(price: float, settings: Settings) -> str:
    """Create a card payment intent for ``price`` dollars and return its client secret."""
    if not settings.stripe_secret_key:
        raise PaymentGatewayError("Stripe is not configured")
    amount = int(round(price * 100))
    try:
        intent = stripe.PaymentIntent.create(
            amount=amount,
            currency="usd",
            payment_method_types=["card"],
            api_key=settings.stripe_secret_key,
        )
    except stripe.StripeError as e:
        raise PaymentGatewayError(str(e)) from e
    return intent.client_secret
