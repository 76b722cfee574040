from paywall.ui.buttons import render_sign_in_button, render_subscribe_button

__all__ = ["render_sign_in_button", "render_subscribe_button"]
