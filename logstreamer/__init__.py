"""jenkins-log-streamer: follow a Jenkins job's console log in the terminal.

Polls the job status, follows the current build's console through
Jenkins' progressive-text API, and renders it into a live, scrollable,
ANSI-aware wrapped view:
  - Build-change detection resets the cursor and buffer on a new build
  - Eager read chaining while the server reports new text, back-off to the
    poll interval when it reports none
  - Streaming word wrap that never splits words or escape sequences
  - Stick-to-bottom scrolling that respects manual scrollback
"""

__version__ = "0.1.0"
__description__ = "Stream the console log of a Jenkins job to your terminal"

from logstreamer.core.poll_scheduler import PollScheduler
from logstreamer.text.wordwrap import WordWrapWriter, wrap
from logstreamer.cli.app import app as cli

__all__ = ["PollScheduler", "WordWrapWriter", "wrap", "cli", "__version__"]
