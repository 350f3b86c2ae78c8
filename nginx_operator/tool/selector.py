"""nginx-operator selector action."""

from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
from typing import cast

from nginx_operator.k8s import labels_for_nginx, selector_for_nginx

from .format import PrintFormatter


class SelectorAction:
    """Print the label selector derived for an Nginx instance."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "selector",
                help="Print the pod label selector of an Nginx instance",
                description="""Print the label selector used to find the pods of
                    an Nginx instance. The same labels are set on the Deployment
                    pod template.""",
            ),
        )
        args.add_argument("name", help="Name of the Nginx instance")
        args.add_argument(
            "--labels",
            action="store_true",
            help="Print the individual labels instead of a selector string",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        name: str,
        labels: bool,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        if not labels:
            print(selector_for_nginx(name))
            return
        rows = [{"key": k, "value": v} for k, v in labels_for_nginx(name).items()]
        PrintFormatter(["key", "value"]).print(rows)
