"""Eunoia services.

Message handling order:
- Safety Service scans every user message before any response is generated
- Crisis Engine records each triggered intervention in the crisis event log
- LLM Service produces persona replies only for messages that pass the scan
- Conversation Service owns sessions and sequences the above per message
"""
