"""User-facing message bodies shared by both surfaces."""

from __future__ import annotations

FOOTER = "---\n*Powered by RobinRelay Bot 🤖*"

REVIEW_IN_PROGRESS = "🚀 **Review in progress…**"

APOLOGY = "Sorry, I encountered an error processing your request."

# Placeholder posted before a long-running comment command; edited in place with the result.
PLACEHOLDERS = {
    "analyze": "🔍 **Starting Code Analysis...**",
    "review": "📝 **Starting Code Review...**",
    "test": "🧪 **Running Tests...**",
    "lint": "🔍 **Running Linting Checks...**",
    "security": "🔒 **Running Security Scan...**",
    "dependencies": "📦 **Checking Dependencies...**",
}


def review_complete(summary: str) -> str:
    return f"✅ **Review complete!**\n\n{summary}\n\n{FOOTER}"


def review_failed(reason: str) -> str:
    return f"❌ **Review failed**\n\n{reason}\n\n{FOOTER}"


def error_block(message: str) -> str:
    return (
        "❌ **Error Occurred**\n\n"
        "Sorry, I encountered an error while processing your request:\n\n"
        f"```\n{message}\n```\n\n"
        "Please try again or contact the bot administrator.\n\n"
        f"{FOOTER}"
    )


def comment_help(bot_name: str) -> str:
    mention = f"@{bot_name}"
    return f"""🤖 **RobinRelay Bot Commands**

**📋 Basic Commands:**
- `{mention} help` - Show this help message
- `{mention} status` - Show current PR status

**🔍 Analysis Commands:**
- `{mention} analyze` - Perform comprehensive code analysis
- `{mention} review` - Perform detailed code review
- `{mention} lint` - Run linting checks
- `{mention} test` - Run automated tests
- `{mention} security` - Perform security scan
- `{mention} dependencies` - Check dependency vulnerabilities

{FOOTER}"""


def chat_help(bot_name: str, slash_command: str) -> str:
    return f"""🤖 *RobinRelay Bot Commands*

*Basic Commands:*
• `hello` - Greet the bot
• `help` - Show this help message

*GitHub Operations:*
• `analyze [repo] [pr#]` - Analyze code in a PR
• `review [repo] [pr#]` - Review a PR
• `list branches [repo]` - List all branches
• `create pr [from] [to] [title]` - Create a pull request
• `edit [file] [content]` - Edit a file
• `status [repo]` - Repository status

*Code Quality:*
• `test [repo]` - Run tests
• `lint [repo]` - Run linting
• `security [repo]` - Security analysis
• `dependencies [repo]` - Check dependencies

*Examples:*
• `analyze my-repo 123`
• `list branches my-repo`
• `create pr dev main "New feature"`
• `edit README.md "Updated introduction"`

*Note:* You can mention me with @{bot_name} or use the {slash_command} slash command!"""


def hello(user_id: str) -> str:
    return f"""👋 Hello <@{user_id}>! I'm RobinRelay Bot, your GitHub assistant.

I can help you with:
• Analyzing code and PRs
• Managing branches and pull requests
• Editing files
• Running tests and security checks

Type `help` to see all available commands."""


def unknown_command(name: str) -> str:
    return f"❌ Unknown command: `{name}`. Type `help` to see available commands."
