"""Input validation utilities."""
import re
import bleach
from shared.enums import CareRecipientStatus


class ValidationError(Exception):
    """Raised when input validation fails."""
    pass


class Validator:
    """Input validation utilities."""

    # Common validation patterns (pre-compiled for performance)
    EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9]+([._%+-][a-zA-Z0-9]+)*@([a-zA-Z0-9]+([.-][a-zA-Z0-9]+)*\.)+[a-zA-Z]{2,}$')
    PIN_PATTERN = re.compile(r'^\d{6}$')
    COLOR_PATTERN = re.compile(r'^#[0-9a-fA-F]{6}$')
    USERNAME_PATTERN = re.compile(r'^[A-Za-z0-9_.@-]+$')

    PIN_LENGTH = 6
    MIN_PASSWORD_LENGTH = 8

    @staticmethod
    def validate_required(value, field_name):
        """Validate that a required field is not empty."""
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(f"{field_name} is required")
        return value

    @staticmethod
    def validate_string_length(value, field_name, min_length=0, max_length=None):
        """Validate string length constraints."""
        if not isinstance(value, str):
            raise ValidationError(f"{field_name} must be a string")

        value = value.strip()
        if len(value) < min_length:
            raise ValidationError(f"{field_name} must be at least {min_length} characters")

        if max_length and len(value) > max_length:
            raise ValidationError(f"{field_name} must be no more than {max_length} characters")

        return value

    @staticmethod
    def validate_email(email):
        """Validate email format."""
        email = email.strip()
        if not Validator.EMAIL_PATTERN.match(email):
            raise ValidationError("Invalid email format")
        return email

    @staticmethod
    def validate_numeric_range(value, field_name, min_val=None, max_val=None):
        """Validate numeric value within range."""
        try:
            num_val = float(value) if isinstance(value, str) else value

            if min_val is not None and num_val < min_val:
                raise ValidationError(f"{field_name} must be at least {min_val}")

            if max_val is not None and num_val > max_val:
                raise ValidationError(f"{field_name} must be no more than {max_val}")

            return num_val
        except (ValueError, TypeError):
            raise ValidationError(f"{field_name} must be a valid number")

    @staticmethod
    def validate_choice(value, field_name, valid_choices):
        """Validate that value is in list of valid choices."""
        if value not in valid_choices:
            raise ValidationError(f"{field_name} must be one of: {', '.join(str(c) for c in valid_choices)}")
        return value

    @staticmethod
    def validate_pin(pin):
        """A PIN is exactly six digits, given as a string or an int."""
        if pin is None:
            raise ValidationError("PIN is required")
        pin = str(pin).strip()
        if not Validator.PIN_PATTERN.match(pin):
            raise ValidationError(f"PIN must be exactly {Validator.PIN_LENGTH} digits")
        return pin

    @staticmethod
    def validate_password(password):
        """Passwords need at least eight characters with a letter and a digit."""
        if not isinstance(password, str) or not password:
            raise ValidationError("Password is required")
        if len(password) < Validator.MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {Validator.MIN_PASSWORD_LENGTH} characters")
        if not any(c.isalpha() for c in password) or not any(c.isdigit() for c in password):
            raise ValidationError("Password must contain at least one letter and one number")
        return password

    @staticmethod
    def sanitize_html(text):
        """Secure HTML sanitization using bleach library.

        Plain text without markup characters is returned untouched.
        """
        if not text:
            return text

        if '<' not in text and '>' not in text and '&' not in text:
            return text

        allowed_tags = ['p', 'br', 'strong', 'em', 'u', 'ul', 'ol', 'li', 'blockquote']
        allowed_attributes = {}

        return bleach.clean(text, tags=allowed_tags, attributes=allowed_attributes, strip=True)

    @staticmethod
    def validate_registration_data(data):
        """Validate a user registration payload."""
        validated = {}

        validated['username'] = Validator.validate_required(
            Validator.validate_string_length(data.get('username') or '', 'Username', 3, 80),
            'Username'
        )
        if not Validator.USERNAME_PATTERN.match(validated['username']):
            raise ValidationError("Username may only contain letters, numbers and . _ @ -")

        validated['password'] = Validator.validate_password(data.get('password'))

        if data.get('name'):
            validated['name'] = Validator.sanitize_html(
                Validator.validate_string_length(data['name'], 'Name', 0, 200)
            )

        if data.get('email'):
            validated['email'] = Validator.validate_email(data['email'])

        return validated

    @staticmethod
    def validate_care_recipient_data(data, partial=False):
        """Validate a care recipient payload; `partial` allows omitting the name."""
        validated = {}

        if not partial or 'name' in data:
            validated['name'] = Validator.validate_required(
                Validator.sanitize_html(
                    Validator.validate_string_length(data.get('name') or '', 'Name', 1, 200)
                ),
                'Name'
            )

        if data.get('color'):
            color = data['color'].strip()
            if not Validator.COLOR_PATTERN.match(color):
                raise ValidationError("Color must be a hex value like #4F46E5")
            validated['color'] = color

        if 'status' in data:
            validated['status'] = Validator.validate_choice(
                data['status'], 'Status', [status.value for status in CareRecipientStatus]
            )

        return validated
