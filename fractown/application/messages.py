BRAND = "fractOWN"

OTP_SMS = "Your fractOWN verification code is: {code}. Valid for {minutes} minutes."
OTP_EMAIL_SUBJECT = "Your fractOWN Verification Code"
OTP_EMAIL_BODY = (
    "Your fractOWN verification code is: {code}\n\n"
    "This code is valid for {minutes} minutes.\n\n"
    "If you didn't request this code, please ignore this message."
)
WELCOME_SMS = "Welcome to fractOWN, {name}! Start investing in premium real estate properties today."
PASSWORD_CHANGED_SMS = "Your fractOWN admin password has been successfully changed."

OTP_VALID_MINUTES = 5


def otp_sms(code: str, minutes: int = OTP_VALID_MINUTES) -> str:
    return OTP_SMS.format(code=code, minutes=minutes)


def otp_email(code: str, minutes: int = OTP_VALID_MINUTES) -> str:
    return OTP_EMAIL_BODY.format(code=code, minutes=minutes)
