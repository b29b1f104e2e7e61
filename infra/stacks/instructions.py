DEFAULT_LOCATION = "us-east-2"


def format_instructions(
    base_url: str,
    stream_group_id: str,
    application_id: str,
    *,
    location: str = DEFAULT_LOCATION,
) -> str:
    """
    Usage text printed as a stack output once the API exists.

    stream_group_id is accepted for parity with the deployment inputs; the share
    URL itself only carries the application id. Nothing here is validated.
    """
    share_url = f"{base_url}?userId=Player1&applicationId={application_id}&location={location}"
    lines = [
        "Instructions",
        "",
        "Here is your Amazon GameLift Streams Share URL:",
        f"  {share_url}",
        "",
        "Add or update arguments to your URL to share your stream:",
        "  ?userId={Add Player Name}&applicationId={Add Application ID}&location={Add AWS Region}",
    ]
    return "\n".join(lines)
