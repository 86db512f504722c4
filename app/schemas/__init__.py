from app.schemas.auth import (
    SendOtpRequest, SignupRequest, LoginRequest, RefreshTokenRequest,
    TokenResponse, MessageResponse, OtpResponse, SignupResponse,
)
from app.schemas.user import UserOut, UserInfo, AuthResponse
from app.schemas.payment import (
    CreatePaymentRequest, CreateOrderResponse, PaymentVerificationRequest,
    PaymentResponse, RazorpayKeyResponse, EmailCheckRequest,
    PaymentEmailRequest, ReceiptData,
)
