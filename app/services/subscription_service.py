import stripe
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Optional, Dict, Any
from datetime import datetime, timezone
import logging

from app.core.config import settings
from app.models.user import User, SubscriptionTier

logger = logging.getLogger(__name__)

# Initialize Stripe with secret key
stripe.api_key = settings.STRIPE_SECRET_KEY

# Stripe statuses that grant premium access
PREMIUM_STATUSES = ('active', 'trialing')


def _field(obj: Any, key: str) -> Any:
    """Read a field from a webhook dict or a Stripe API object"""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def _period_end(subscription: Any) -> Optional[datetime]:
    # Newer API versions report the period on the subscription items
    timestamp = _field(subscription, 'current_period_end')
    if not timestamp:
        items = _field(subscription, 'items')
        items = [] if callable(items) else (_field(items, 'data') or [])
        timestamp = _field(items[0], 'current_period_end') if items else None
    if not timestamp:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


class SubscriptionService:
    """Service for managing Stripe subscriptions and user tiers"""

    @staticmethod
    def create_customer(user: User) -> Optional[str]:
        """Create a Stripe customer for a user"""
        try:
            customer = stripe.Customer.create(
                email=user.email,
                name=user.name,
                metadata={
                    'user_id': user.id,
                    'auth_user_id': user.auth_user_id
                }
            )
            logger.info(f"Created Stripe customer {customer.id} for user {user.id}")
            return customer.id
        except stripe.StripeError as e:
            logger.error(f"Failed to create Stripe customer for user {user.id}: {str(e)}")
            return None

    @staticmethod
    def create_checkout_session(user: User, db: Session) -> Optional[str]:
        """Create a Stripe checkout session for premium subscription"""
        if not settings.STRIPE_PRICE_ID_PREMIUM:
            logger.error("STRIPE_PRICE_ID_PREMIUM not configured")
            return None

        # Create customer if they don't have one
        if not user.stripe_customer_id:
            customer_id = SubscriptionService.create_customer(user)
            if not customer_id:
                return None
            user.stripe_customer_id = customer_id
            db.commit()

        try:
            session = stripe.checkout.Session.create(
                customer=user.stripe_customer_id,
                payment_method_types=['card'],
                line_items=[{
                    'price': settings.STRIPE_PRICE_ID_PREMIUM,
                    'quantity': 1,
                }],
                mode='subscription',
                success_url=f"{settings.FRONTEND_URL}/subscription/success?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{settings.FRONTEND_URL}/subscription/cancel",
                client_reference_id=user.id,
                metadata={
                    'user_id': user.id,
                }
            )

            logger.info(f"Created checkout session {session.id} for user {user.id}")
            return session.url
        except stripe.StripeError as e:
            logger.error(f"Failed to create checkout session for user {user.id}: {str(e)}")
            return None

    @staticmethod
    def create_billing_portal_session(user: User) -> Optional[str]:
        """Create a Stripe billing portal session for subscription management"""
        if not user.stripe_customer_id:
            logger.warning(f"User {user.id} has no Stripe customer ID")
            return None

        try:
            session = stripe.billing_portal.Session.create(
                customer=user.stripe_customer_id,
                return_url=f"{settings.FRONTEND_URL}/profile"
            )

            logger.info(f"Created billing portal session for user {user.id}")
            return session.url
        except stripe.StripeError as e:
            logger.error(f"Failed to create billing portal session for user {user.id}: {str(e)}")
            return None

    @staticmethod
    def find_user(db: Session, customer_id: Optional[str] = None, subscription_id: Optional[str] = None) -> Optional[User]:
        """Find the user behind a Stripe customer or subscription"""
        if customer_id:
            user = db.query(User).filter(User.stripe_customer_id == customer_id).first()
            if user:
                return user
        if subscription_id:
            return db.query(User).filter(User.stripe_subscription_id == subscription_id).first()
        return None

    @staticmethod
    def link_checkout_session(session_data: Dict[str, Any], db: Session) -> Optional[User]:
        """Attach the Stripe customer and subscription from a completed checkout to its user"""
        metadata = session_data.get('metadata') or {}
        user_id = session_data.get('client_reference_id') or metadata.get('user_id')
        if not user_id:
            logger.warning(f"Checkout session {session_data.get('id')} has no user reference")
            return None

        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            logger.warning(f"No user {user_id} for checkout session {session_data.get('id')}")
            return None

        try:
            user.stripe_customer_id = session_data.get('customer') or user.stripe_customer_id
            user.stripe_subscription_id = session_data.get('subscription') or user.stripe_subscription_id
            db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to link checkout session for user {user.id}: {str(e)}")
            db.rollback()
            return None

        logger.info(f"Linked checkout session {session_data.get('id')} to user {user.id}")
        return user

    @staticmethod
    def update_user_subscription(
        user: User,
        subscription_data: Any,
        db: Session
    ) -> bool:
        """Set tier and Stripe status from a subscription (webhook dict or API object)"""
        try:
            status = _field(subscription_data, 'status')
            tier = SubscriptionTier.PREMIUM if status in PREMIUM_STATUSES else SubscriptionTier.FREE

            user.stripe_subscription_id = _field(subscription_data, 'id')
            user.subscription_status = status
            user.subscription_tier = tier
            user.current_period_end = _period_end(subscription_data)

            db.commit()

            logger.info(f"Updated subscription for user {user.id}: tier={tier.value}, status={status}")
            return True

        except SQLAlchemyError as e:
            logger.error(f"Failed to update subscription for user {user.id}: {str(e)}")
            db.rollback()
            return False

    @staticmethod
    def handle_subscription_deleted(subscription_data: Dict[str, Any], db: Session) -> bool:
        """Downgrade the owner of a cancelled subscription to the free tier"""
        subscription_id = subscription_data.get('id')
        user = SubscriptionService.find_user(
            db,
            customer_id=subscription_data.get('customer'),
            subscription_id=subscription_id
        )

        if not user:
            logger.warning(f"No user found for deleted subscription {subscription_id}")
            return False

        try:
            user.subscription_tier = SubscriptionTier.FREE
            user.subscription_status = 'canceled'
            user.stripe_subscription_id = None
            user.current_period_end = None
            db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to handle subscription deletion: {str(e)}")
            db.rollback()
            return False

        logger.info(f"Handled subscription deletion for user {user.id}")
        return True

    @staticmethod
    def is_premium_user(user: User) -> bool:
        """Check if user has premium access"""
        return user.subscription_tier == SubscriptionTier.PREMIUM

    @staticmethod
    def get_subscription_info(user: User) -> Dict[str, Any]:
        """Get subscription information for a user"""
        return {
            'tier': user.subscription_tier.value,
            'status': user.subscription_status,
            'current_period_end': user.current_period_end,
            'has_stripe_subscription': bool(user.stripe_subscription_id),
            'is_premium': SubscriptionService.is_premium_user(user)
        }
