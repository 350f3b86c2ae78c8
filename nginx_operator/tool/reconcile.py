"""nginx-operator reconcile action."""

from argparse import (
    ArgumentParser,
    BooleanOptionalAction,
    _SubParsersAction as SubParsersAction,
)
import logging
import pathlib
from typing import cast

from nginx_operator.client import InMemoryClient
from nginx_operator.controller import NginxController
from nginx_operator.dispatcher import NginxHandler
from nginx_operator.exceptions import ReconcileException
from nginx_operator.manifest import ClusterObject, Nginx, read_objects
from nginx_operator.reconciler import DependentReconcilerConfig
from nginx_operator.task import task_service_context

from .format import PrintFormatter, StructFormatter, YamlFormatter

_LOGGER = logging.getLogger(__name__)


class ReconcileAction:
    """Reconcile Nginx objects against an in-memory cluster."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "reconcile",
                help="Reconcile Nginx objects against an in-memory cluster",
                description="""Load objects from YAML files into an in-memory
                    cluster, reconcile every Nginx object and print the
                    resulting cluster objects. Deployments, Services and Pods
                    in the files are loaded as the existing cluster state.""",
            ),
        )
        args.add_argument(
            "paths",
            type=pathlib.Path,
            nargs="+",
            help="YAML files with Nginx objects and existing cluster objects",
        )
        args.add_argument(
            "--delete",
            action="store_true",
            help="Delete the Nginx objects once reconciled",
        )
        args.add_argument(
            "--update-deployment",
            type=bool,
            action=BooleanOptionalAction,
            default=True,
            help="Update existing Deployments that drifted from the Nginx spec",
        )
        args.add_argument(
            "--output",
            "-o",
            choices=["yaml", "name"],
            default="yaml",
            help="Output format of the command",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        paths: list[pathlib.Path],
        delete: bool,
        update_deployment: bool,
        output: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        objects: list[ClusterObject] = []
        for path in paths:
            objects.extend(await read_objects(path))

        client = InMemoryClient()
        config = DependentReconcilerConfig(update_deployment=update_deployment)
        handler = NginxHandler(client, config=config)
        nginxes: list[Nginx] = []
        for obj in objects:
            if isinstance(obj, Nginx):
                nginxes.append(obj)
            else:
                client.seed(obj)

        with task_service_context() as task_service:
            controller = NginxController(client, handler)
            try:
                for nginx in nginxes:
                    await client.create(nginx)
                await task_service.block_till_done()
                if delete:
                    for nginx in nginxes:
                        await client.delete(nginx.resource_id)
                    await task_service.block_till_done()
            finally:
                await controller.close()

        _LOGGER.info("Reconciled %d Nginx objects", len(nginxes))
        formatter: StructFormatter
        if output == "name":
            formatter = PrintFormatter(["kind", "namespace", "name"])
            rows = [
                {"kind": obj.kind, "namespace": obj.namespace, "name": obj.name}
                for obj in client.list_objects()
            ]
            formatter.print(rows)
        else:
            YamlFormatter().print([obj.to_doc() for obj in client.list_objects()])

        if controller.errors:
            errors = sorted(controller.errors.items())
            raise ReconcileException("; ".join(f"{rid}: {err}" for rid, err in errors))
