import re
import logging
import httpx

logger = logging.getLogger(__name__)

class TelegramConfigValidator:
    """
    Validates Telegram storage provider configuration.

    Performs multi-layer validation:
    1. Schema validation (required fields, types)
    2. Format validation (token pattern, chat ID format)
    3. Business logic validation (size limits, etc.)
    4. Live API validation (check bot token works)
    """

    # Format: 123456789:AAHdqTcvCH1vGWJxfSeofSAs0K5PALDsaw (example)
    BOT_TOKEN_PATTERN = re.compile(r'^\d{5,16}:[A-Za-z0-9_-]{30,}$')

    # Numeric chat IDs (negative for groups/channels) or public @channelusername
    CHAT_ID_PATTERN = re.compile(r'^(-?\d{5,20}|@[A-Za-z][A-Za-z0-9_]{4,31})$')

    # Chunk size limits
    MIN_CHUNK_SIZE = 1024  # 1KB minimum
    MAX_UPLOAD_SIZE = 50 * 1024 * 1024  # sendDocument limit for bots
    MAX_DOWNLOAD_SIZE = 20 * 1024 * 1024  # getFile limit for bots

    def __init__(self, config):
        self.config = config
        self.errors = []
        self.warnings = []

    def validate(self, allow_errors=False, skip_api_check=False) -> bool:
        """
        Validates the Telegram configuration.

        Args:
            allow_errors: If True, returns True even if there are validation errors.
            skip_api_check: If True, skips live API validation (check bot token works).
            Should only be changed in test environments.

        Returns:
            bool: True if config is valid (or has only warnings), False otherwise.
        """
        self.errors = []
        self.warnings = []

        self._validate_schema()

        if not self.errors:
            self._validate_formats()

        if not self.errors:
            self._validate_business_rules()

        if not self.errors and not skip_api_check:
            self._validate_live_api()

        for error in self.errors:
            logger.error(f"Telegram config validation error: {error}")
        for warning in self.warnings:
            logger.warning(f"Telegram config validation warning: {warning}")

        logger.info(f"Telegram config validation completed: {len(self.errors)} error(s), {len(self.warnings)} warning(s)")
        logger.debug(self.get_validation_report())

        if not allow_errors:
            return len(self.errors) == 0
        else:
            logger.info(f"Validation completed with errors allowed; returning True even if {len(self.errors)} errors exist.")
            return True

    def _validate_schema(self):
        """Validates required fields exist and have correct types."""
        if not isinstance(self.config, dict):
            self.errors.append("Config must be a dictionary")
            return

        required_fields = {
            'bot_token': str,
            'chat_id': (str, int),
        }

        for field, expected_type in required_fields.items():
            if field not in self.config:
                self.errors.append(f"Missing required field: '{field}'")
                continue

            value = self.config[field]

            if value is None or value == '':
                self.errors.append(f"Field '{field}' cannot be empty")
                continue

            if isinstance(value, bool) or not isinstance(value, expected_type):
                if isinstance(expected_type, tuple):
                    type_names = ' or '.join(t.__name__ for t in expected_type)
                else:
                    type_names = expected_type.__name__
                self.errors.append(
                    f"Field '{field}' must be {type_names}, got {type(value).__name__}"
                )

        optional_fields = {
            'max_chunk_size': int,
            'timeout': (int, float),
            'encrypted': bool,
        }

        for field, expected_type in optional_fields.items():
            if field in self.config:
                value = self.config[field]
                if value is not None and not isinstance(value, expected_type):
                    type_names = (' or '.join(t.__name__ for t in expected_type)
                                  if isinstance(expected_type, tuple) else expected_type.__name__)
                    self.errors.append(
                        f"Optional field '{field}' must be {type_names}, got {type(value).__name__}"
                    )

    def _validate_formats(self):
        """Validates field formats and patterns."""
        bot_token = str(self.config.get('bot_token', ''))
        if bot_token and not self.BOT_TOKEN_PATTERN.match(bot_token):
            self.warnings.append(
                "Bot token doesn't match expected Telegram token format. "
                "This might be a test token or incorrectly formatted."
            )

        chat_id = str(self.config.get('chat_id', ''))
        if not self.CHAT_ID_PATTERN.match(chat_id):
            self.errors.append(
                f"'chat_id' ({chat_id}) must be a numeric chat ID or an @channel username"
            )

    def _validate_business_rules(self):
        """Validates business logic and constraints."""
        max_chunk_size = self.config.get('max_chunk_size')
        if max_chunk_size is None:
            return

        if max_chunk_size < self.MIN_CHUNK_SIZE:
            self.warnings.append(
                f"max_chunk_size ({max_chunk_size}) is too small. "
                f"Minimum is {self.MIN_CHUNK_SIZE} bytes"
            )
            return

        upload_size = self.uploaded_size(max_chunk_size, self.config.get('encrypted', False))
        if upload_size > self.MAX_UPLOAD_SIZE:
            self.warnings.append(
                f"Chunks of {max_chunk_size} bytes upload as {upload_size} bytes, which exceeds "
                f"Telegram's upload limit of {self.MAX_UPLOAD_SIZE} bytes"
            )
        elif upload_size > self.MAX_DOWNLOAD_SIZE:
            self.warnings.append(
                f"Chunks of {max_chunk_size} bytes upload as {upload_size} bytes, which exceeds "
                f"Telegram's download limit of {self.MAX_DOWNLOAD_SIZE} bytes. "
                "They will upload but cannot be read back."
            )

    @staticmethod
    def uploaded_size(chunk_size, encrypted=False):
        """Size on the wire: encrypted chunks are base64(iv || padded ciphertext)."""
        if not encrypted:
            return chunk_size
        raw = 16 + (chunk_size // 16 + 1) * 16
        return 4 * ((raw + 2) // 3)

    def _validate_live_api(self):
        """Validates configuration against live Telegram API (bot token check)."""
        url = f"https://api.telegram.org/bot{self.config['bot_token']}/getMe"

        try:
            with httpx.Client(timeout=30.0) as client:
                response = client.get(url)
                if response.status_code == 200 and response.json().get('ok'):
                    return True
                elif response.status_code in (401, 404):
                    self.errors.append("Bot token is invalid or unauthorized.")
                    return False
                else:
                    self.errors.append(
                        f"Unexpected response from Telegram API when validating bot token: "
                        f"HTTP {response.status_code}"
                    )
                    return False
        except httpx.RequestError as e:
            self.errors.append(f"Failed to validate bot token: {str(e)}")
            return False

    def get_errors(self):
        """Returns list of validation errors."""
        return self.errors.copy()

    def get_warnings(self):
        """Returns list of validation warnings."""
        return self.warnings.copy()

    def get_validation_report(self):
        """Returns a formatted validation report."""
        report = []

        if not self.errors and not self.warnings:
            report.append("[+] Configuration is valid")
        else:
            if self.errors:
                report.append(f"[x] {len(self.errors)} error(s) found:")
                for error in self.errors:
                    report.append(f"  - {error}")

            if self.warnings:
                report.append(f"[!] {len(self.warnings)} warning(s):")
                for warning in self.warnings:
                    report.append(f"  - {warning}")

        return "\n".join(report)
