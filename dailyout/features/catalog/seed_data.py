"""Built-in challenge catalog, loaded by `python -m dailyout.workers.seed_challenges`."""

# (slug, category, difficulty, text)
CHALLENGE_CATALOG = [
    # Awareness (5)
    ("notice-five-sounds", "awareness", 1, "Stop for one minute and name five sounds you can hear right now."),
    ("eat-without-screen", "awareness", 1, "Eat one meal today with no phone, no screen and no book."),
    ("notice-avoidance", "awareness", 2, "Notice one moment today where you avoided something uncomfortable. Write down what it was."),
    ("sit-with-boredom", "awareness", 3, "Sit somewhere public for ten minutes without reaching for your phone."),
    ("name-the-fear", "awareness", 4, "Pick the conversation you are most avoiding and write down exactly what you are afraid will happen."),
    # Private (5)
    ("cold-shower-finish", "private", 1, "End your shower with 30 seconds of cold water."),
    ("write-three-wins", "private", 2, "Write down three things you did well this week, without qualifiers."),
    ("sing-alone-loud", "private", 2, "Sing one full song out loud at home, at full volume."),
    ("record-yourself", "private", 3, "Record a two-minute video of yourself talking about your day, then watch it back."),
    ("unsent-letter", "private", 4, "Write an honest letter to someone you have unfinished business with. You do not have to send it."),
    # Visual (5)
    ("wear-bright-color", "visual", 1, "Wear one item of clothing in a colour you would normally avoid."),
    ("new-route", "visual", 2, "Take a completely different route to a place you go every day."),
    ("hat-in-public", "visual", 3, "Wear a hat or accessory that draws attention for a whole afternoon."),
    ("sit-in-front", "visual", 4, "Sit in the front row at the next talk, class or meeting you attend."),
    ("lie-down-in-park", "visual", 5, "Lie down on the grass in a busy park for five minutes."),
    # Interaction (6)
    ("compliment-stranger", "interaction", 2, "Give a genuine compliment to a stranger."),
    ("ask-for-directions", "interaction", 2, "Ask a stranger for directions, even if you know the way."),
    ("ask-barista-name", "interaction", 3, "Ask the person serving you their name and use it when you thank them."),
    ("ask-for-discount", "interaction", 4, "Politely ask for a discount somewhere you normally would not."),
    ("start-conversation-queue", "interaction", 4, "Start a conversation with someone while waiting in line."),
    ("invite-someone-new", "interaction", 5, "Invite someone you do not know well to coffee or lunch."),
    # Share (5)
    ("share-opinion", "share", 2, "Share an honest opinion in a group chat where you usually stay quiet."),
    ("post-unpolished", "share", 3, "Post something online that is unpolished and real."),
    ("tell-a-story", "share", 3, "Tell a friend a story about a time you failed."),
    ("ask-for-feedback", "share", 4, "Ask someone you trust for honest feedback on something you made."),
    ("speak-up-meeting", "share", 5, "Speak up first in a meeting or group conversation."),
    # Reflect (5)
    ("rate-your-day", "reflect", 1, "Rate today from 1 to 10 and write one sentence on why."),
    ("comfort-zone-map", "reflect", 2, "List three things that were uncomfortable a year ago and feel normal now."),
    ("future-self", "reflect", 3, "Write a paragraph from yourself one year from now, describing what you dared to do."),
    ("biggest-regret", "reflect", 4, "Write about one thing you regret not doing and what stopped you."),
    ("values-audit", "reflect", 5, "Write down your top three values and one way your last week contradicted each."),
]
