#!/usr/bin/env python3
"""Simple CLI for trying VoiceSwap locally"""

import argparse
import asyncio
from typing import Optional

from voiceswap.core.intent import IntentParser, describe_intent
from voiceswap.core.voice.orchestrator import ConversationOrchestrator
from voiceswap.core.voice.transcription import InMemoryTranscriptionChannel
from voiceswap.logging_config import setup_logging


def speak_to_stdout(text: str) -> None:
    print(f"🔊 {text}")


async def cli_parse(text: str):
    """Print the intent parsed from one utterance"""
    parser = IntentParser.from_settings()
    intent = await parser.parse_voice_command_async(text)
    validation = parser.validate_intent(intent)

    print(f"Action:     {intent.action.value}")
    print(f"Token in:   {intent.token_in or '-'}")
    print(f"Token out:  {intent.token_out or '-'}")
    print(f"Amount in:  {intent.amount_in or '-'}")
    print(f"Confidence: {intent.confidence:.2f}")
    print(f"Parsed by:  {intent.parsed_by.value if intent.parsed_by else '-'}")
    print(f"Summary:    {describe_intent(intent)}")
    if not validation.valid:
        print(f"Missing:    {', '.join(validation.missing)}")


async def cli_chat(wallet: Optional[str] = None):
    """Interactive typed voice session"""
    print("🎙️  VoiceSwap")
    print("Type what you would say. 'exit' to quit, 'state' to show the conversation state")
    print("-" * 40)

    channel = InMemoryTranscriptionChannel(echo=speak_to_stdout)
    orchestrator = ConversationOrchestrator.from_settings(channel, wallet_address=wallet)
    await orchestrator.initialize()
    await orchestrator.start_listening()

    try:
        while True:
            try:
                # Read in a worker thread so settlement pollers keep running
                user_input = (await asyncio.to_thread(input, "\n🗣️  You: ")).strip()
            except (KeyboardInterrupt, EOFError):
                print("\nGoodbye! 👋")
                break

            if user_input.lower() in ['exit', 'quit', 'q']:
                print("Goodbye! 👋")
                break

            elif user_input.lower() == 'state':
                context = orchestrator.context.to_dict()
                print(f"State:   {context['state']}")
                print(f"Wallet:  {context['wallet_address'] or 'not connected'}")
                print(f"Session: {context['session']}")
                print(f"Gas:     {orchestrator.gas_tank.format_balance_for_speech()}")
                continue

            elif not user_input:
                continue

            try:
                outcome = await orchestrator.submit_transcript(user_input)
            except Exception as e:
                print(f"❌ Error: {e}")
                continue

            if outcome.error:
                print(f"   ({outcome.state.value}: {outcome.error})")
    finally:
        await orchestrator.stop()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="VoiceSwap CLI")
    subparsers = parser.add_subparsers(dest="command")

    chat_parser = subparsers.add_parser("chat", help="Interactive typed voice session")
    chat_parser.add_argument("--wallet", help="Wallet address (default: WALLET_ADDRESS)")

    parse_parser = subparsers.add_parser("parse", help="Print the parsed intent for an utterance")
    parse_parser.add_argument("text", help="Utterance, e.g. \"swap 100 USDC to ETH\"")

    parser.add_argument("--log-level", help="Override LOG_LEVEL")

    return parser


async def main():
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    setup_logging(args.log_level or "WARNING")

    command = args.command.lower()

    if command == "chat":
        await cli_chat(args.wallet)

    elif command == "parse":
        await cli_parse(args.text)

    else:
        print(f"❌ Unknown command: {command}")
        parser.print_help()


if __name__ == "__main__":
    asyncio.run(main())
