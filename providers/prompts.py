# =============================================================================
# Double Vision - Prompts and Offline Templates
# =============================================================================
# Fixed instruction prompts sent to the external backends, and the templates
# the local backend fills in without touching the network.
# =============================================================================

ANALYSIS_PROMPT = (
    "Analyze this ESP32 display output. Describe what you see and provide "
    "suggestions for improving the graphical interface, especially for LVGL "
    "development."
)

CODE_GENERATION_PROMPT = (
    "Generate LVGL C code for ESP32 to create a graphical interface based on "
    "this description: {description}. The code should be compatible with "
    "ESP32 and use LVGL version 8.x. Include proper initialization and styling."
)

FIX_REQUEST = "Fix the issues mentioned in this analysis: {analysis}"

LOCAL_ANALYSIS_MARKER = "Local display analysis"

LOCAL_ANALYSIS_TEMPLATE = """{marker}:

This appears to be an ESP32 display output. The frame shows:
- Display resolution: {width}x{height} pixels
- Frame size: {size_bytes} bytes
- Frame fingerprint: {fingerprint}

Suggestions for improvement:
1. Guard display initialization and report failed panel setup
2. Implement double buffering for smoother animations
3. Add touch input handling if using a touch display
4. Optimize drawing functions for better performance

LVGL specific recommendations:
- Use lv_obj_set_style_* functions for consistent styling
- Implement proper event handling for interactive elements
- Consider using lv_timer for periodic updates instead of delays"""

LOCAL_CODE_TEMPLATE = """// LVGL Code Generated by Double Vision
#include "lvgl.h"

static void btn_event_handler(lv_event_t * e);

void create_ui() {
    // Create a simple button
    lv_obj_t * btn = lv_btn_create(lv_scr_act());
    lv_obj_set_size(btn, 120, 50);
    lv_obj_center(btn);

    lv_obj_t * label = lv_label_create(btn);
    lv_label_set_text(label, "Hello");
    lv_obj_center(label);

    // Add event handler
    lv_obj_add_event_cb(btn, btn_event_handler, LV_EVENT_CLICKED, NULL);
}

static void btn_event_handler(lv_event_t * e) {
    lv_event_code_t code = lv_event_get_code(e);
    if(code == LV_EVENT_CLICKED) {
        // Button clicked
    }
}"""
