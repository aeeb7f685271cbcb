"""
Transactional email.

Modules:
- core: send_email over SMTP (logs and returns False when SMTP is not configured)
- store: order, shipping, wholesale and contact-form messages
"""
