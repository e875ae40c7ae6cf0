# Outbound company email
from typing import Dict, List, Optional

import resend


class EmailService:
    """
    Thin wrapper over Resend for mail sent from the studio inbox
    """

    def __init__(self, api_key=None, from_email="onboarding@resend.dev", testing=False):
        self.api_key = api_key
        self.from_email = from_email
        self.testing = testing

    @classmethod
    def from_config(cls, config):
        return cls(
            api_key=config.get("RESEND_API_KEY"),
            from_email=config.get("RESEND_FROM_EMAIL", "onboarding@resend.dev"),
            testing=bool(config.get("TESTING")),
        )

    def send(
        self,
        to: List[str],
        subject: str,
        html: Optional[str] = None,
        text: Optional[str] = None,
        cc: Optional[List[str]] = None,
        bcc: Optional[List[str]] = None,
    ) -> Dict:
        """
        Send one email.

        Returns:
            Dict with 'success' and either 'email_id' or 'error'
        """
        if not self.api_key and not self.testing:
            return {"success": False, "error": "RESEND_API_KEY is not configured"}

        params = {"from": self.from_email, "to": to, "subject": subject}
        if html:
            params["html"] = html
        if text:
            params["text"] = text
        if cc:
            params["cc"] = cc
        if bcc:
            params["bcc"] = bcc

        try:
            if self.api_key:
                resend.api_key = self.api_key
            response = resend.Emails.send(params)
            return {"success": True, "email_id": response.get("id")}
        except Exception as e:
            return {"success": False, "error": str(e)}
