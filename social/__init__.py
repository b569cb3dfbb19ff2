"""Social core: follow graph, conversations and the message ledger.

Every public operation raises a ``social.errors.SocialError`` subclass on a
business-rule failure and runs inside a Flask application context.
"""
