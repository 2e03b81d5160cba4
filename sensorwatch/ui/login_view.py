"""Login View: Authentication Screen.

Presents the sign-in form with Sign In / Create Account tabs, the
emailed-code step of account creation, and the three-step forgot
password wizard.

**Thin UI Rule**: This module contains ZERO business logic.  It
gathers inputs, hands them to the flow controllers on a worker thread,
and re-renders from controller state whenever a controller reports a
change.
"""

from __future__ import annotations

import threading
import tkinter as tk
from typing import Any, Callable, Optional

import customtkinter as ctk

from sensorwatch.logger import StructuredLogger
from sensorwatch.models.auth_models import AuthResult
from sensorwatch.models.enums import LoginState, ResetStep, SignupPhase
from sensorwatch.services.credential_flow import CredentialFlowController
from sensorwatch.services.password_reset import PasswordResetController
from sensorwatch.services.signup_flow import SignupController
from sensorwatch.ui.theme import (
    ACCENT_HOVER,
    ACCENT_PRIMARY,
    CARD_BORDER,
    CONTENT_BG,
    CONTENT_CARD_BG,
    CORNER_RADIUS,
    ERROR_TEXT,
    FONT_BODY,
    FONT_BRAND,
    FONT_BUTTON,
    FONT_CAPTION,
    FONT_ICON_LG,
    FONT_LABEL,
    FONT_SMALL,
    FONT_SUBTITLE,
    FONT_TAB,
    FONT_TAB_ACTIVE,
    INPUT_BG,
    INPUT_BORDER,
    LINK_HOVER,
    PADDING_LG,
    PADDING_MD,
    PADDING_SM,
    SUCCESS_TEXT,
    TEXT_LIGHT,
    TEXT_PRIMARY,
    TEXT_SECONDARY,
)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
_CARD_WIDTH: int = 420
_TAB_HEIGHT: int = 42
_INPUT_HEIGHT: int = 44
_BUTTON_HEIGHT: int = 48
_BRAND_ICON_SIZE: int = 56
_PASSWORD_MASK: str = "•" * 8

_SIGN_IN_TEXT: str = "Sign In  →"
_CREATE_TEXT: str = "Create Account  →"
_RESEND_CODE_TEXT: str = "Resend Code"


class LoginView(ctk.CTkFrame):
    """Full-screen login frame.

    Parameters
    ----------
    parent:
        The root ``CTk`` window this frame belongs to.
    credential_flow:
        Email/password sign-in and verification-email resend.
    signup_flow:
        Account creation with emailed code.
    password_reset:
        Forgot-password wizard; also owns the post-reset banner.
    logger:
        Structured JSON logger.
    """

    def __init__(
        self,
        parent: ctk.CTk,
        credential_flow: CredentialFlowController,
        signup_flow: SignupController,
        password_reset: PasswordResetController,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(parent, fg_color=CONTENT_BG)

        self._credential_flow = credential_flow
        self._signup_flow = signup_flow
        self._password_reset = password_reset
        self._logger = logger
        self._alive: bool = True

        self._active_tab: str = "sign_in"

        # Sign In widgets
        self._email_entry: Optional[ctk.CTkEntry] = None
        self._password_entry: Optional[ctk.CTkEntry] = None
        self._login_button: Optional[ctk.CTkButton] = None
        self._login_message_label: Optional[ctk.CTkLabel] = None
        self._resend_verification_button: Optional[ctk.CTkButton] = None
        self._banner_label: Optional[ctk.CTkLabel] = None

        # Create Account widgets
        self._signup_info_frame: Optional[ctk.CTkFrame] = None
        self._signup_otp_frame: Optional[ctk.CTkFrame] = None
        self._su_name_entry: Optional[ctk.CTkEntry] = None
        self._su_email_entry: Optional[ctk.CTkEntry] = None
        self._su_password_entry: Optional[ctk.CTkEntry] = None
        self._su_confirm_entry: Optional[ctk.CTkEntry] = None
        self._su_create_button: Optional[ctk.CTkButton] = None
        self._su_otp_hint_label: Optional[ctk.CTkLabel] = None
        self._su_otp_entry: Optional[ctk.CTkEntry] = None
        self._su_verify_button: Optional[ctk.CTkButton] = None
        self._su_resend_button: Optional[ctk.CTkButton] = None
        self._su_message_label: Optional[ctk.CTkLabel] = None

        # Forgot Password widgets
        self._reset_step_frames: dict[ResetStep, ctk.CTkFrame] = {}
        self._rp_email_entry: Optional[ctk.CTkEntry] = None
        self._rp_request_button: Optional[ctk.CTkButton] = None
        self._rp_otp_entry: Optional[ctk.CTkEntry] = None
        self._rp_resend_button: Optional[ctk.CTkButton] = None
        self._rp_password_entry: Optional[ctk.CTkEntry] = None
        self._rp_confirm_entry: Optional[ctk.CTkEntry] = None
        self._rp_set_button: Optional[ctk.CTkButton] = None
        self._rp_message_label: Optional[ctk.CTkLabel] = None

        # Tabs and content frames
        self._tab_bar: Optional[ctk.CTkFrame] = None
        self._sign_in_tab: Optional[ctk.CTkButton] = None
        self._signup_tab: Optional[ctk.CTkButton] = None
        self._sign_in_frame: Optional[ctk.CTkFrame] = None
        self._signup_frame: Optional[ctk.CTkFrame] = None
        self._reset_frame: Optional[ctk.CTkFrame] = None

        self._build_ui()

        for controller in (credential_flow, signup_flow, password_reset):
            controller.subscribe(self._request_render)
        self._render()

    # ------------------------------------------------------------------
    # UI Construction
    # ------------------------------------------------------------------

    def _build_ui(self) -> None:
        """Create the complete login screen."""
        self.grid_rowconfigure(0, weight=1)
        self.grid_rowconfigure(1, weight=0)
        self.grid_rowconfigure(2, weight=0)
        self.grid_rowconfigure(3, weight=1)
        self.grid_columnconfigure(0, weight=1)

        card = ctk.CTkFrame(
            self,
            width=_CARD_WIDTH,
            fg_color=CONTENT_CARD_BG,
            corner_radius=16,
            border_width=1,
            border_color=CARD_BORDER,
        )
        card.grid(row=1, column=0, pady=(0, PADDING_SM))

        inner = ctk.CTkFrame(card, fg_color="transparent")
        inner.pack(fill="both", expand=True, padx=36, pady=28)

        # -- Brand icon --
        icon_frame = ctk.CTkFrame(
            inner,
            width=_BRAND_ICON_SIZE,
            height=_BRAND_ICON_SIZE,
            corner_radius=14,
            fg_color=ACCENT_PRIMARY,
        )
        icon_frame.pack(pady=(0, 12))
        icon_frame.pack_propagate(False)

        ctk.CTkLabel(
            icon_frame,
            text="℃",
            font=FONT_ICON_LG,
            text_color=TEXT_LIGHT,
        ).place(relx=0.5, rely=0.5, anchor="center")

        ctk.CTkLabel(
            inner,
            text="SensorWatch",
            font=FONT_BRAND,
            text_color=TEXT_PRIMARY,
        ).pack(pady=(0, 2))

        ctk.CTkLabel(
            inner,
            text="Temperature & Humidity Monitoring",
            font=FONT_SUBTITLE,
            text_color=TEXT_SECONDARY,
        ).pack(pady=(0, PADDING_LG))

        # -- Tab bar --
        self._tab_bar = ctk.CTkFrame(inner, fg_color="transparent", height=_TAB_HEIGHT)
        self._tab_bar.pack(fill="x", pady=(0, PADDING_MD))
        self._tab_bar.pack_propagate(False)
        self._tab_bar.grid_columnconfigure(0, weight=1)
        self._tab_bar.grid_columnconfigure(1, weight=1)

        self._sign_in_tab = self._make_tab(self._tab_bar, "Sign In", "sign_in")
        self._sign_in_tab.grid(row=0, column=0, sticky="nsew")
        self._signup_tab = self._make_tab(self._tab_bar, "Create Account", "signup")
        self._signup_tab.grid(row=0, column=1, sticky="nsew")

        self._content = ctk.CTkFrame(inner, fg_color="transparent")
        self._content.pack(fill="both", expand=True)

        self._sign_in_frame = ctk.CTkFrame(self._content, fg_color="transparent")
        self._build_sign_in_tab(self._sign_in_frame)

        self._signup_frame = ctk.CTkFrame(self._content, fg_color="transparent")
        self._build_signup_tab(self._signup_frame)

        self._reset_frame = ctk.CTkFrame(self._content, fg_color="transparent")
        self._build_reset_wizard(self._reset_frame)

        ctk.CTkLabel(
            self,
            text="© 2025 SensorWatch. All rights reserved.",
            font=FONT_CAPTION,
            text_color=TEXT_SECONDARY,
        ).grid(row=2, column=0, pady=(PADDING_SM, 0))

    def _build_sign_in_tab(self, parent: ctk.CTkFrame) -> None:
        """Build the Sign In form fields inside the given parent frame."""
        # Reset-success banner (hidden until a reset completes)
        self._banner_label = ctk.CTkLabel(
            parent,
            text="",
            font=FONT_SMALL,
            text_color=SUCCESS_TEXT,
            wraplength=_CARD_WIDTH - 100,
        )

        self._email_label = self._field_label(parent, "EMAIL ADDRESS")
        self._email_label.pack(fill="x", pady=(PADDING_MD, 4))
        self._email_entry = self._make_entry(parent, "name@example.com")
        self._email_entry.pack(fill="x", pady=(0, PADDING_MD))

        self._field_label(parent, "PASSWORD").pack(fill="x", pady=(0, 4))
        self._password_entry = self._make_entry(parent, _PASSWORD_MASK, show="*")
        self._password_entry.pack(fill="x", pady=(0, PADDING_LG))

        self._login_button = self._make_primary_button(
            parent, _SIGN_IN_TEXT, self._handle_login,
        )
        self._login_button.pack(fill="x", pady=(0, PADDING_SM))

        self._login_message_label = self._message_label(parent)

        self._resend_verification_button = self._make_link_button(
            parent, "Resend verification email", self._handle_resend_verification,
        )
        # Packed only while the controller offers it

        self._forgot_link = self._make_link_button(
            parent, "Forgot Password?", self._show_forgot_password,
        )
        self._forgot_link.pack(pady=(PADDING_SM, 0))

        # TODO: add a "Sign in with Google" button once a desktop OAuth
        # flow can hand an ID token to CredentialFlowController.google_login.

        self._email_entry.bind("<Return>", self._on_enter_key)
        self._password_entry.bind("<Return>", self._on_enter_key)

    def _build_signup_tab(self, parent: ctk.CTkFrame) -> None:
        """Build the two signup phases: account details and code entry."""
        # -- Phase 1: details --
        self._signup_info_frame = ctk.CTkFrame(parent, fg_color="transparent")
        info = self._signup_info_frame

        self._field_label(info, "NAME").pack(fill="x", pady=(PADDING_MD, 4))
        self._su_name_entry = self._make_entry(info, "e.g. Jordan Smith")
        self._su_name_entry.pack(fill="x", pady=(0, PADDING_MD))

        self._field_label(info, "EMAIL ADDRESS").pack(fill="x", pady=(0, 4))
        self._su_email_entry = self._make_entry(info, "name@example.com")
        self._su_email_entry.pack(fill="x", pady=(0, PADDING_MD))

        self._field_label(info, "PASSWORD").pack(fill="x", pady=(0, 4))
        self._su_password_entry = self._make_entry(info, _PASSWORD_MASK, show="*")
        self._su_password_entry.pack(fill="x", pady=(0, PADDING_MD))

        self._field_label(info, "RE-ENTER PASSWORD").pack(fill="x", pady=(0, 4))
        self._su_confirm_entry = self._make_entry(info, _PASSWORD_MASK, show="*")
        self._su_confirm_entry.pack(fill="x", pady=(0, PADDING_LG))

        self._su_create_button = self._make_primary_button(
            info, _CREATE_TEXT, self._handle_signup,
        )
        self._su_create_button.pack(fill="x", pady=(0, PADDING_SM))

        ctk.CTkLabel(
            info,
            text="At least 8 characters with uppercase, lowercase and numbers.",
            font=FONT_CAPTION,
            text_color=TEXT_SECONDARY,
        ).pack(pady=(0, PADDING_SM))

        # -- Phase 2: code entry --
        self._signup_otp_frame = ctk.CTkFrame(parent, fg_color="transparent")
        otp = self._signup_otp_frame

        self._su_otp_hint_label = ctk.CTkLabel(
            otp,
            text="",
            font=FONT_SMALL,
            text_color=TEXT_SECONDARY,
            wraplength=_CARD_WIDTH - 100,
        )
        self._su_otp_hint_label.pack(fill="x", pady=(PADDING_MD, PADDING_SM))

        self._field_label(otp, "VERIFICATION CODE").pack(fill="x", pady=(0, 4))
        self._su_otp_entry = self._make_entry(otp, "000000")
        self._su_otp_entry.pack(fill="x", pady=(0, PADDING_LG))
        self._su_otp_entry.bind("<Return>", lambda _event: self._handle_verify_otp())

        self._su_verify_button = self._make_primary_button(
            otp, "Verify & Create Account", self._handle_verify_otp,
        )
        self._su_verify_button.pack(fill="x", pady=(0, PADDING_SM))

        self._su_resend_button = self._make_link_button(
            otp, _RESEND_CODE_TEXT, self._handle_resend_otp,
        )
        self._su_resend_button.pack(pady=(0, 4))

        self._make_link_button(
            otp, "← Back to signup", self._back_to_signup,
        ).pack()

        self._su_message_label = self._message_label(parent)

    def _build_reset_wizard(self, parent: ctk.CTkFrame) -> None:
        """Build one frame per forgot-password step."""
        ctk.CTkLabel(
            parent,
            text="Reset your password",
            font=FONT_BUTTON,
            text_color=TEXT_PRIMARY,
        ).pack(fill="x", pady=(0, PADDING_SM))

        # -- Step 1: email --
        request = ctk.CTkFrame(parent, fg_color="transparent")
        ctk.CTkLabel(
            request,
            text="Enter your email to receive a reset code:",
            font=FONT_SMALL,
            text_color=TEXT_SECONDARY,
        ).pack(fill="x", pady=(0, 4))
        self._rp_email_entry = self._make_entry(request, "name@example.com")
        self._rp_email_entry.pack(fill="x", pady=(0, PADDING_MD))
        self._rp_request_button = self._make_primary_button(
            request, "Send Reset Code", self._handle_request_reset,
        )
        self._rp_request_button.pack(fill="x", pady=(0, PADDING_SM))
        self._make_link_button(request, "Cancel", self._password_reset.close).pack()
        self._reset_step_frames[ResetStep.REQUEST_EMAIL] = request

        # -- Step 2: code --
        confirm = ctk.CTkFrame(parent, fg_color="transparent")
        ctk.CTkLabel(
            confirm,
            text="Enter the 6-digit code we emailed you:",
            font=FONT_SMALL,
            text_color=TEXT_SECONDARY,
        ).pack(fill="x", pady=(0, 4))
        self._rp_otp_entry = self._make_entry(confirm, "000000")
        self._rp_otp_entry.pack(fill="x", pady=(0, PADDING_MD))
        self._rp_otp_entry.bind("<Return>", lambda _event: self._handle_confirm_reset_otp())
        self._make_primary_button(
            confirm, "Continue", self._handle_confirm_reset_otp,
        ).pack(fill="x", pady=(0, PADDING_SM))
        self._rp_resend_button = self._make_link_button(
            confirm, _RESEND_CODE_TEXT, self._handle_resend_reset_otp,
        )
        self._rp_resend_button.pack(pady=(0, 4))
        self._make_link_button(confirm, "← Back", self._reset_back).pack()
        self._reset_step_frames[ResetStep.CONFIRM_OTP] = confirm

        # -- Step 3: new password --
        new_password = ctk.CTkFrame(parent, fg_color="transparent")
        self._field_label(new_password, "NEW PASSWORD").pack(fill="x", pady=(0, 4))
        self._rp_password_entry = self._make_entry(new_password, _PASSWORD_MASK, show="*")
        self._rp_password_entry.pack(fill="x", pady=(0, PADDING_MD))
        self._field_label(new_password, "RE-ENTER NEW PASSWORD").pack(fill="x", pady=(0, 4))
        self._rp_confirm_entry = self._make_entry(new_password, _PASSWORD_MASK, show="*")
        self._rp_confirm_entry.pack(fill="x", pady=(0, PADDING_LG))
        self._rp_set_button = self._make_primary_button(
            new_password, "Reset Password", self._handle_set_password,
        )
        self._rp_set_button.pack(fill="x", pady=(0, PADDING_SM))
        self._make_link_button(new_password, "← Back", self._reset_back).pack()
        self._reset_step_frames[ResetStep.SET_PASSWORD] = new_password

        self._rp_message_label = self._message_label(parent)

    # ------------------------------------------------------------------
    # Widget factories
    # ------------------------------------------------------------------

    def _make_tab(self, parent: ctk.CTkFrame, text: str, tab: str) -> ctk.CTkButton:
        return ctk.CTkButton(
            parent,
            text=text,
            font=FONT_TAB,
            fg_color="transparent",
            hover_color=LINK_HOVER,
            text_color=TEXT_SECONDARY,
            height=_TAB_HEIGHT,
            corner_radius=0,
            border_width=1,
            border_color=INPUT_BORDER,
            command=lambda: self._switch_tab(tab),
        )

    @staticmethod
    def _field_label(parent: ctk.CTkFrame, text: str) -> ctk.CTkLabel:
        return ctk.CTkLabel(
            parent,
            text=text,
            font=FONT_LABEL,
            text_color=TEXT_PRIMARY,
            anchor="w",
        )

    @staticmethod
    def _make_entry(
        parent: ctk.CTkFrame,
        placeholder: str,
        show: Optional[str] = None,
    ) -> ctk.CTkEntry:
        options: dict[str, Any] = {"show": show} if show else {}
        return ctk.CTkEntry(
            parent,
            placeholder_text=placeholder,
            font=FONT_BODY,
            fg_color=INPUT_BG,
            border_color=INPUT_BORDER,
            text_color=TEXT_PRIMARY,
            height=_INPUT_HEIGHT,
            corner_radius=CORNER_RADIUS,
            **options,
        )

    @staticmethod
    def _make_primary_button(
        parent: ctk.CTkFrame,
        text: str,
        command: Callable[[], None],
    ) -> ctk.CTkButton:
        return ctk.CTkButton(
            parent,
            text=text,
            font=FONT_BUTTON,
            fg_color=ACCENT_PRIMARY,
            hover_color=ACCENT_HOVER,
            text_color=TEXT_LIGHT,
            height=_BUTTON_HEIGHT,
            corner_radius=CORNER_RADIUS,
            command=command,
        )

    @staticmethod
    def _make_link_button(
        parent: ctk.CTkFrame,
        text: str,
        command: Callable[[], None],
    ) -> ctk.CTkButton:
        return ctk.CTkButton(
            parent,
            text=text,
            font=FONT_SMALL,
            fg_color="transparent",
            hover_color=LINK_HOVER,
            text_color=ACCENT_PRIMARY,
            height=28,
            corner_radius=CORNER_RADIUS,
            command=command,
        )

    @staticmethod
    def _message_label(parent: ctk.CTkFrame) -> ctk.CTkLabel:
        return ctk.CTkLabel(
            parent,
            text="",
            font=FONT_SMALL,
            text_color=ERROR_TEXT,
            wraplength=_CARD_WIDTH - 100,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def show_sign_in(self) -> None:
        """Bring the Sign In tab to the front (used by the shell's ``show_login``)."""
        self._switch_tab("sign_in")

    # ------------------------------------------------------------------
    # Tab switching
    # ------------------------------------------------------------------

    def _switch_tab(self, tab: str) -> None:
        """Switch between Sign In and Create Account tabs."""
        if tab == self._active_tab:
            return
        self._active_tab = tab
        self._render()

    def _style_tabs(self) -> None:
        for button, tab in ((self._sign_in_tab, "sign_in"), (self._signup_tab, "signup")):
            if tab == self._active_tab:
                button.configure(
                    text_color=ACCENT_PRIMARY,
                    border_color=ACCENT_PRIMARY,
                    border_width=2,
                    font=FONT_TAB_ACTIVE,
                )
            else:
                button.configure(
                    text_color=TEXT_SECONDARY,
                    border_color=INPUT_BORDER,
                    border_width=1,
                    font=FONT_TAB,
                )

    # ------------------------------------------------------------------
    # Event Handlers: Sign In
    # ------------------------------------------------------------------

    def _on_enter_key(self, event: tk.Event[tk.Misc]) -> None:
        """Trigger the login flow when the user presses Enter."""
        self._handle_login()

    def _handle_login(self) -> None:
        self._run_async(
            self._credential_flow.login,
            self._email_entry.get(),
            self._password_entry.get(),
        )

    def _handle_resend_verification(self) -> None:
        self._run_async(
            self._credential_flow.resend_verification,
            self._email_entry.get(),
        )

    # ------------------------------------------------------------------
    # Event Handlers: Create Account
    # ------------------------------------------------------------------

    def _handle_signup(self) -> None:
        self._run_async(
            self._signup_flow.submit,
            self._su_name_entry.get(),
            self._su_email_entry.get(),
            self._su_password_entry.get(),
            self._su_confirm_entry.get(),
        )

    def _handle_verify_otp(self) -> None:
        self._run_async(
            self._signup_flow.verify_otp,
            self._su_otp_entry.get().strip(),
            on_done=self._after_verify_otp,
        )

    def _after_verify_otp(self, result: AuthResult) -> None:
        """Clear the code field when the server rejected the code."""
        if not result.success and not result.is_suppressed and not self._signup_flow.otp_code:
            self._su_otp_entry.delete(0, "end")

    def _handle_resend_otp(self) -> None:
        self._run_async(self._signup_flow.resend_otp)

    def _back_to_signup(self) -> None:
        self._su_otp_entry.delete(0, "end")
        self._signup_flow.reset()

    # ------------------------------------------------------------------
    # Event Handlers: Forgot Password
    # ------------------------------------------------------------------

    def _show_forgot_password(self) -> None:
        for entry in (self._rp_email_entry, self._rp_otp_entry,
                      self._rp_password_entry, self._rp_confirm_entry):
            entry.delete(0, "end")
        self._password_reset.open()

    def _handle_request_reset(self) -> None:
        self._run_async(self._password_reset.request_reset, self._rp_email_entry.get())

    def _handle_confirm_reset_otp(self) -> None:
        self._password_reset.confirm_otp_shape(self._rp_otp_entry.get().strip())

    def _handle_set_password(self) -> None:
        self._run_async(
            self._password_reset.set_new_password,
            self._rp_password_entry.get(),
            self._rp_confirm_entry.get(),
            on_done=self._after_set_password,
        )

    def _after_set_password(self, result: AuthResult) -> None:
        if result.success:
            for entry in (self._rp_email_entry, self._rp_otp_entry,
                          self._rp_password_entry, self._rp_confirm_entry):
                entry.delete(0, "end")

    def _handle_resend_reset_otp(self) -> None:
        self._run_async(self._password_reset.resend_reset_otp)

    def _reset_back(self) -> None:
        self._rp_otp_entry.delete(0, "end")
        self._password_reset.back()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _request_render(self) -> None:
        """Controller listener; may fire on a worker thread."""
        self._post(self._render)

    def _render(self) -> None:
        """Sync every widget with controller state (main thread only)."""
        if not self._alive:
            return

        reset_step = self._password_reset.step
        if reset_step is not ResetStep.CLOSED:
            self._tab_bar.pack_forget()
            self._sign_in_frame.pack_forget()
            self._signup_frame.pack_forget()
            self._reset_frame.pack(fill="both", expand=True)
            self._render_reset(reset_step)
            return

        self._reset_frame.pack_forget()
        if not self._tab_bar.winfo_manager():
            self._tab_bar.pack(fill="x", pady=(0, PADDING_MD), before=self._content)
        self._style_tabs()
        if self._active_tab == "sign_in":
            self._signup_frame.pack_forget()
            self._sign_in_frame.pack(fill="both", expand=True)
            self._render_sign_in()
        else:
            self._sign_in_frame.pack_forget()
            self._signup_frame.pack(fill="both", expand=True)
            self._render_signup()

    def _render_sign_in(self) -> None:
        flow = self._credential_flow

        banner = self._password_reset.banner
        if banner:
            self._banner_label.configure(text=banner)
            if not self._banner_label.winfo_manager():
                self._banner_label.pack(fill="x", pady=(PADDING_SM, 0), before=self._email_label)
        else:
            self._banner_label.pack_forget()

        busy = flow.is_submitting or flow.state is LoginState.SUCCESS_REDIRECTING
        self._login_button.configure(
            text="Signing in..." if flow.is_submitting else _SIGN_IN_TEXT,
            state="disabled" if busy else "normal",
        )

        self._show_message(self._login_message_label, flow.message, flow.message_is_error,
                           before=self._forgot_link)

        if flow.show_resend_verification:
            self._resend_verification_button.configure(
                text="Sending..." if flow.is_resending else "Resend verification email",
                state="disabled" if flow.is_resending else "normal",
            )
            if not self._resend_verification_button.winfo_manager():
                self._resend_verification_button.pack(before=self._forgot_link)
        else:
            self._resend_verification_button.pack_forget()

    def _render_signup(self) -> None:
        flow = self._signup_flow

        if flow.phase is SignupPhase.OTP_PENDING:
            self._signup_info_frame.pack_forget()
            self._pack_above(self._signup_otp_frame, self._su_message_label)
            self._su_otp_hint_label.configure(
                text=f"We sent a 6-digit code to {flow.email}. Enter it below to finish.",
            )
            self._su_verify_button.configure(
                text="Verifying..." if flow.is_verifying else "Verify & Create Account",
                state="disabled" if flow.is_verifying else "normal",
            )
            self._render_resend(self._su_resend_button, flow.cooldown_remaining, flow.is_submitting)
        else:
            self._signup_otp_frame.pack_forget()
            self._pack_above(self._signup_info_frame, self._su_message_label)
            self._su_create_button.configure(
                text="Creating account..." if flow.is_submitting else _CREATE_TEXT,
                state="disabled" if flow.is_submitting else "normal",
            )

        self._show_message(self._su_message_label, flow.message, flow.message_is_error)

    def _render_reset(self, step: ResetStep) -> None:
        flow = self._password_reset

        for frame_step, frame in self._reset_step_frames.items():
            if frame_step is step:
                self._pack_above(frame, self._rp_message_label)
            else:
                frame.pack_forget()

        busy = flow.is_busy
        self._rp_request_button.configure(
            text="Sending..." if busy else "Send Reset Code",
            state="disabled" if busy else "normal",
        )
        self._rp_set_button.configure(
            text="Resetting..." if busy else "Reset Password",
            state="disabled" if busy else "normal",
        )
        self._render_resend(self._rp_resend_button, flow.cooldown_remaining, busy)

        self._show_message(self._rp_message_label, flow.message, flow.message_is_error)

    @staticmethod
    def _pack_above(widget: tk.Misc, anchor: tk.Misc) -> None:
        """Pack *widget* (if hidden) above *anchor*, or last when *anchor* is hidden."""
        if widget.winfo_manager():
            return
        if anchor.winfo_manager():
            widget.pack(fill="x", before=anchor)
        else:
            widget.pack(fill="x")

    @staticmethod
    def _render_resend(button: ctk.CTkButton, remaining: int, busy: bool) -> None:
        if remaining > 0:
            button.configure(text=f"Resend in {remaining}s", state="disabled")
        else:
            button.configure(text=_RESEND_CODE_TEXT, state="disabled" if busy else "normal")

    @staticmethod
    def _show_message(
        label: ctk.CTkLabel,
        message: Optional[str],
        is_error: bool,
        before: Optional[tk.Misc] = None,
    ) -> None:
        if not message:
            label.configure(text="")
            label.pack_forget()
            return
        label.configure(text=message, text_color=ERROR_TEXT if is_error else SUCCESS_TEXT)
        if not label.winfo_manager():
            if before is not None:
                label.pack(fill="x", pady=(0, PADDING_SM), before=before)
            else:
                label.pack(fill="x", pady=(0, PADDING_SM))

    # ------------------------------------------------------------------
    # Threading helpers
    # ------------------------------------------------------------------

    def _run_async(
        self,
        operation: Callable[..., AuthResult],
        *args: Any,
        on_done: Optional[Callable[[AuthResult], None]] = None,
    ) -> None:
        """Run a controller operation on a daemon thread.

        Controllers report progress through their listeners; *on_done*
        (if given) receives the result back on the main thread.
        """
        def worker() -> None:
            try:
                result = operation(*args)
            except Exception as exc:
                self._logger.exception("Auth operation failed unexpectedly: %s", exc)
                return
            if on_done is not None:
                self._post(on_done, result)

        threading.Thread(target=worker, daemon=True).start()

    def _post(self, callback: Callable[..., None], *args: Any) -> None:
        """Schedule *callback* on the Tk main loop unless the view is gone."""
        if self._alive:
            self.after(0, callback, *args)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def destroy(self) -> None:
        """Detach from the controllers before destroying the widget."""
        self._alive = False
        for controller in (self._credential_flow, self._signup_flow, self._password_reset):
            controller.unsubscribe(self._request_render)
        super().destroy()
