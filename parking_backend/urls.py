# ==================== PARKING_BACKEND/URLS.PY ====================
from django.contrib import admin
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView, TokenObtainPairView

from parking.views import ParkingLotViewSet
from bookings.views import BookingViewSet
from payments.views import PaymentViewSet
from payments.webhooks import razorpay_webhook
from notifications.views import NotificationViewSet

# Create router and register viewsets
router = DefaultRouter()
router.register(r'parking-lots', ParkingLotViewSet, basename='parking-lot')
router.register(r'bookings', BookingViewSet, basename='booking')
router.register(r'notifications', NotificationViewSet, basename='notification')

urlpatterns = [
    # Admin
    path('admin/', admin.site.urls),

    # API versioning
    path('api/v1/', include([
        # Authentication endpoints
        path('auth/', include([
            path('token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
            path('token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
        ])),

        # API routes
        path('', include(router.urls)),

        # Payments
        path('payments/', include([
            path('create-intent/', PaymentViewSet.as_view({'post': 'create_intent'}), name='create_intent'),
            path('confirm/', PaymentViewSet.as_view({'post': 'confirm'}), name='confirm_payment'),
            path('history/', PaymentViewSet.as_view({'get': 'history'}), name='payment_history'),
            path('refund/', PaymentViewSet.as_view({'post': 'refund'}), name='refund'),
            path('earnings/', PaymentViewSet.as_view({'get': 'earnings'}), name='earnings'),
        ])),
    ])),

    path('webhooks/', include([
        path('razorpay/', razorpay_webhook, name='razorpay_webhook'),
    ])),
]
