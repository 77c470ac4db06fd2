# pipeline/shape_autosizer.py
from config.log_config import app_logger

# Shape geometry is stored in English Metric Units
EMU_PER_INCH = 914400
EMU_PER_CM = 360000
EMU_PER_POINT = 12700

HEIGHT_OVERFLOW_THRESHOLD = 5.0
HEIGHT_GROWTH_FACTOR = 1.2
MIN_HEIGHT_INCREASE = 100000

WIDTH_OVERFLOW_THRESHOLD = 10.0
WIDTH_RESIZE_OVERFLOW = 30.0
MAX_WIDTH_GROWTH_RATIO = 0.15
MAX_WIDTH_INCREASE = 200000
NARROW_ASPECT_RATIO = 2.0


def inches_to_emu(inches):
    return int(round(inches * EMU_PER_INCH))


def emu_to_inches(emu):
    return emu / EMU_PER_INCH


def cm_to_emu(cm):
    return int(round(cm * EMU_PER_CM))


def emu_to_cm(emu):
    return emu / EMU_PER_CM


def points_to_emu(points):
    return int(round(points * EMU_PER_POINT))


def estimate_overflow(original_text, translated_text):
    """Percentage by which the translation is longer than the original (negative if shorter)"""
    if not original_text:
        return 0.0
    return (len(translated_text) / len(original_text) - 1) * 100


def calculate_new_height(current_height, overflow_percent):
    if current_height <= 0 or overflow_percent <= HEIGHT_OVERFLOW_THRESHOLD:
        return current_height
    scaled = int(round(current_height * (1 + overflow_percent / 100 * HEIGHT_GROWTH_FACTOR)))
    return max(scaled, current_height + MIN_HEIGHT_INCREASE)


def calculate_new_width(current_width, overflow_percent):
    if current_width <= 0 or overflow_percent <= WIDTH_OVERFLOW_THRESHOLD:
        return current_width
    increase = min(int(round(current_width * MAX_WIDTH_GROWTH_RATIO)), MAX_WIDTH_INCREASE)
    return current_width + increase


def autosize_shape(shape, original_text, translated_text):
    """Grow a parsed shape so the longer translation does not clip.

    Height grows once overflow passes 5%. Width grows only for narrow shapes
    (width/height < 2) and only past 30% overflow. Nothing ever shrinks, and
    shapes without an ``a:xfrm/a:ext`` node are left alone.
    Returns True when the shape was resized.
    """
    if shape.bounds is None or shape.ext_element is None:
        return False

    overflow = estimate_overflow(original_text, translated_text)
    if overflow <= HEIGHT_OVERFLOW_THRESHOLD:
        return False

    bounds = shape.bounds
    new_height = calculate_new_height(bounds.cy, overflow)
    new_width = bounds.cx
    if bounds.cy > 0 and bounds.cx / bounds.cy < NARROW_ASPECT_RATIO and overflow > WIDTH_RESIZE_OVERFLOW:
        new_width = calculate_new_width(bounds.cx, overflow)

    if new_height == bounds.cy and new_width == bounds.cx:
        return False

    shape.ext_element.set("cy", str(new_height))
    shape.ext_element.set("cx", str(new_width))
    app_logger.debug(
        f"Resized shape {shape.name or shape.shape_id}: overflow {overflow:.1f}%, "
        f"{bounds.cx}x{bounds.cy} -> {new_width}x{new_height}"
    )
    bounds.cy = new_height
    bounds.cx = new_width
    return True
