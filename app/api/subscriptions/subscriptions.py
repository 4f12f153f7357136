from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session
import stripe
import json
import logging

from app.core.database import get_db
from app.core.config import settings
from app.api.auth.auth import get_current_user
from app.models.user import User
from app.schemas.subscription import SubscriptionInfo, CheckoutSessionResponse, PortalSessionResponse
from app.schemas.usage import UsageSummary
from app.services.subscription_service import SubscriptionService
from app.services.usage_ledger import UsageLedger
from app.middleware.rate_limit import limiter

router = APIRouter()
logger = logging.getLogger(__name__)

@router.post("/webhook")
@limiter.limit(settings.WEBHOOK_RATE_LIMIT)
async def stripe_webhook(request: Request, db: Session = Depends(get_db)):
    """Handle Stripe webhook events. The only writer of a user's subscription tier."""
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    if not signature:
        logger.warning("Stripe webhook received without signature")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing signature"
        )

    if not settings.STRIPE_WEBHOOK_SECRET:
        logger.error("STRIPE_WEBHOOK_SECRET not configured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook secret not configured"
        )

    try:
        stripe.Webhook.construct_event(payload, signature, settings.STRIPE_WEBHOOK_SECRET)
    except ValueError:
        logger.error("Invalid JSON in Stripe webhook payload")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid JSON"
        )
    except stripe.SignatureVerificationError:
        logger.warning("Invalid Stripe webhook signature")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid signature"
        )

    # Signature checked above; work with plain dicts from here on
    event = json.loads(payload)
    event_type = event.get('type')
    data = event.get('data', {}).get('object', {})

    logger.info(f"Processing Stripe webhook: {event_type}")

    handler = WEBHOOK_HANDLERS.get(event_type)
    if handler is None:
        logger.info(f"Unhandled webhook event type: {event_type}")
    else:
        handler(data, db)

    return {"status": "success"}

def handle_checkout_completed(session_data: dict, db: Session):
    """Link the new Stripe customer and subscription to the user who paid"""
    user = SubscriptionService.link_checkout_session(session_data, db)
    subscription_id = session_data.get('subscription')
    if not user or not subscription_id:
        return

    try:
        subscription = stripe.Subscription.retrieve(subscription_id)
    except stripe.StripeError as e:
        # customer.subscription.created carries the same data
        logger.error(f"Failed to retrieve subscription {subscription_id}: {str(e)}")
        return
    SubscriptionService.update_user_subscription(user, subscription, db)

def handle_subscription_changed(subscription_data: dict, db: Session):
    """Handle subscription creation and updates"""
    subscription_id = subscription_data.get('id')
    user = SubscriptionService.find_user(
        db,
        customer_id=subscription_data.get('customer'),
        subscription_id=subscription_id
    )

    if not user:
        logger.warning(f"No user found for subscription {subscription_id}")
        return

    success = SubscriptionService.update_user_subscription(user, subscription_data, db)
    if success:
        logger.info(f"Successfully updated subscription for user {user.id}")
    else:
        logger.error(f"Failed to update subscription for user {user.id}")

def handle_subscription_deleted(subscription_data: dict, db: Session):
    """Handle subscription deletion"""
    if SubscriptionService.handle_subscription_deleted(subscription_data, db):
        logger.info("Successfully handled subscription deletion")
    else:
        logger.error("Failed to handle subscription deletion")

def handle_payment_succeeded(invoice_data: dict, db: Session):
    """Refresh the subscription from Stripe after a successful payment"""
    customer_id = invoice_data.get('customer')
    subscription_id = invoice_data.get('subscription')

    if not subscription_id:
        return  # Not a subscription payment

    user = SubscriptionService.find_user(db, customer_id=customer_id)
    if not user:
        logger.warning(f"No user found for payment success webhook, customer {customer_id}")
        return

    try:
        subscription = stripe.Subscription.retrieve(subscription_id)
    except stripe.StripeError as e:
        logger.error(f"Failed to retrieve subscription {subscription_id}: {str(e)}")
        return

    SubscriptionService.update_user_subscription(user, subscription, db)
    logger.info(f"Payment succeeded for user {user.id}, subscription refreshed")

def handle_payment_failed(invoice_data: dict, db: Session):
    """Log a failed payment; the tier follows customer.subscription.updated"""
    customer_id = invoice_data.get('customer')
    subscription_id = invoice_data.get('subscription')

    if not subscription_id:
        return  # Not a subscription payment

    user = SubscriptionService.find_user(db, customer_id=customer_id)
    if not user:
        logger.warning(f"No user found for payment failed webhook, customer {customer_id}")
        return

    logger.warning(f"Payment failed for user {user.id}, subscription {subscription_id}")

WEBHOOK_HANDLERS = {
    'checkout.session.completed': handle_checkout_completed,
    'customer.subscription.created': handle_subscription_changed,
    'customer.subscription.updated': handle_subscription_changed,
    'customer.subscription.deleted': handle_subscription_deleted,
    'invoice.payment_succeeded': handle_payment_succeeded,
    'invoice.payment_failed': handle_payment_failed,
}

@router.post("/create-checkout-session", response_model=CheckoutSessionResponse)
@limiter.limit(settings.DEFAULT_RATE_LIMIT)
async def create_checkout_session(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a Stripe checkout session for premium subscription"""

    # Check if user already has premium
    if SubscriptionService.is_premium_user(current_user):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User already has premium subscription"
        )

    checkout_url = SubscriptionService.create_checkout_session(current_user, db)
    if not checkout_url:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create checkout session"
        )

    return {"checkout_url": checkout_url}

@router.post("/create-portal-session", response_model=PortalSessionResponse)
@limiter.limit(settings.DEFAULT_RATE_LIMIT)
async def create_portal_session(
    request: Request,
    current_user: User = Depends(get_current_user)
):
    """Create a Stripe billing portal session"""

    if not current_user.stripe_customer_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User has no Stripe customer account"
        )

    portal_url = SubscriptionService.create_billing_portal_session(current_user)
    if not portal_url:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create billing portal session"
        )

    return {"portal_url": portal_url}

@router.get("/status", response_model=SubscriptionInfo)
@limiter.limit(settings.DEFAULT_RATE_LIMIT)
async def get_subscription_status(
    request: Request,
    current_user: User = Depends(get_current_user)
):
    """Get current user's subscription status"""
    return SubscriptionService.get_subscription_info(current_user)

@router.get("/usage", response_model=UsageSummary)
@limiter.limit(settings.DEFAULT_RATE_LIMIT)
async def get_usage_stats(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get current user's usage and the limits of their tier"""
    return UsageLedger.get_usage_summary(current_user, db)
