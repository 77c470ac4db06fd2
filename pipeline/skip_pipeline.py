import regex as re

MULTIBYTE_PATTERN = re.compile(r'[一-鿿぀-ヿ㐀-䶿가-힯＀-￯]')

# Values that are data rather than language
NON_TEXT_PATTERNS = [re.compile(p, re.IGNORECASE) for p in (
    r'^-?\d+([.,]\d+)*$',                                   # 12, -3, 1,234.5, 1.2.3
    r'^-?\d+(\.\d+)?[eE][+-]?\d+$',                         # 1.5e10
    r'^\d+(\.\d+)?\s*[%‰]$',                                # 45%
    r'^\d+:\d+(\.\d+)?$',                                   # 16:9
    r'^\d+/\d+$',                                           # 3/4
    r'^0x[0-9a-f]+$|^0b[01]+$|^0o[0-7]+$',                  # 0xFF, 0b1010, 0o777
    r'^#[0-9a-f]{3,8}$',                                    # #FFF
    r'^[$¥€£₹₽¢₩₫]\s*\d[\d,.]*$|^\d[\d,.]*\s*[$¥€£₹₽¢₩₫]$', # $12.50
    r'^\d+:\d{2}(:\d{2})?\s*-\s*\d+:\d{2}(:\d{2})?$',       # 8:00-18:00
    r'^\d+(\.\d+)?\s*-\s*\d+(\.\d+)?$',                     # 204-205
    r'^\+?\d{1,3}[-\s.]\d{2,4}[-\s.]\d{3,4}([-\s.]\d{3,4})?$',  # phone numbers
    r'^\d+(\.\d+)?\s*(mm|cm|m|km|in|ft|mg|g|kg|lb|ml|l|kb|mb|gb|tb|hz|khz|mhz|ghz|v|kv|w|kw|px|pt|rpm|dpi|fps|°[cf]?)$',
    r'^v?\d+(\.\d+){1,3}(-\w+)?(\+\w+)?$',                  # v1.2.3-beta
    r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$',  # UUID
    r'^\d{1,3}(\.\d{1,3}){3}(:\d+)?$',                      # IPv4[:port]
    r'^([0-9a-f]{2}[:-]){5}[0-9a-f]{2}$',                   # MAC address
    r'^(https?|ftp|ftps|sftp|file)://\S+$',                 # URL
    r'^www\.\S+\.\S+$',
    r'^[a-z0-9._%+-]+@[a-z0-9.-]+\.[a-z]{2,}$',             # email
    r'^[a-z]:\\|^/[^/\s]',                                  # file paths
    r'^[a-z0-9_\-.]+\.[a-z0-9]{1,5}$',                      # file names
    r'^[\{\[<][^{}\[\]<>]*[\}\]>]$|^\$\{[^}]*\}$|^%[a-z_][a-z0-9_]*%$|^\{\{[^}]*\}\}$',  # placeholders
    r'^[\d+\-*/().\s=<>≤≥≠±×÷√∞]+$',                        # arithmetic
    r'^[\s\p{P}\p{S}\d]+$',                                 # only symbols, digits, spaces
)]

# Codes and identifiers, matched case-sensitively
IDENTIFIER_PATTERNS = [re.compile(p) for p in (
    r'^[A-Z]{1,4}\d{2,}[A-Z]?\d*$',                         # ABC123
    r'^[A-Z]{2,}-\d{2,}(-[A-Z0-9]+)*$',                     # ABC-123
    r'^(?=.*\d)[A-Z0-9]{6,}$',                               # serial numbers
    r'^[A-Z]{2,6}\d+$',                                     # USB2, MP3
    r'^[A-Z]+_[A-Z]+(_[A-Z]+)*$',                           # MAX_SIZE
)]


def is_multibyte(text):
    """Check if text contains multibyte characters (Chinese, Japanese, Korean, etc.)"""
    return bool(MULTIBYTE_PATTERN.search(text))


def should_translate(text_value):
    """Decide whether a cell, sheet name or shape text is natural language worth translating"""
    if text_value is None:
        return False
    text_value = str(text_value).strip()

    if not text_value:
        return False

    # CJK text almost always needs translation
    if is_multibyte(text_value):
        return True

    for pattern in NON_TEXT_PATTERNS:
        if pattern.match(text_value):
            return False

    for pattern in IDENTIFIER_PATTERNS:
        if pattern.match(text_value):
            return False

    alpha_count = sum(1 for char in text_value if char.isalpha())
    if alpha_count < 2:
        return False

    # Short strings must be mostly letters
    if len(text_value) <= 3 and alpha_count / len(text_value) < 0.5:
        return False

    total_meaningful = sum(1 for char in text_value if char.isalnum())
    if total_meaningful and alpha_count / total_meaningful >= 0.6:
        return True

    # Mixed content
    return len(text_value) > 8 and alpha_count >= 3
