"""
Kubernetes executor for cluster job execution.

Runs each job as a single pod using:
- Kubernetes Python client for API interactions
- Jinja2 templates for Pod manifests
"""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from jinja2 import Environment, FileSystemLoader
from kubernetes import client, config
from kubernetes.client.rest import ApiException

from pipeline_jobs.core.config import Settings, settings as default_settings
from pipeline_jobs.core.exceptions import BackendError, SubmissionError
from pipeline_jobs.core.telemetry import get_logger
from pipeline_jobs.execution.executors.base import (
    STATUS_COMPLETED,
    STATUS_FAILED,
    STATUS_PENDING,
    STATUS_RUNNING,
    JobExecutor,
)
from pipeline_jobs.execution.request import ExecutionRequest, VolumeSpec

logger = get_logger(__name__)

CONTAINER_NAME = "job"
TEMPLATE_NAME = "job_pod.yaml.j2"

# Waiting reasons that will never resolve without a new submission
FATAL_WAITING_REASONS = {
    "ErrImagePull",
    "ImagePullBackOff",
    "InvalidImageName",
    "CreateContainerConfigError",
    "CreateContainerError",
}


class K8sExecutor(JobExecutor):
    """Executor for Kubernetes pod execution."""

    def __init__(self, settings: Optional[Settings] = None):
        """Initialize K8s client and template environment."""
        settings = settings or default_settings

        # Load K8s config (in-cluster or kubeconfig)
        try:
            config.load_incluster_config()
        except config.ConfigException:
            config.load_kube_config()

        self.core_v1 = client.CoreV1Api()
        self.namespace = settings.namespace

        template_dir = Path(__file__).resolve().parents[2] / "job_templates"
        self.jinja_env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render_manifest(self, request: ExecutionRequest) -> Dict[str, Any]:
        """Render the pod manifest for a request as a dict."""
        template = self.jinja_env.get_template(TEMPLATE_NAME)
        manifest_yaml = template.render(
            request=request.model_dump(), container_name=CONTAINER_NAME
        )
        logger.debug(f"Rendered pod manifest for {request.pod_name}:\n{manifest_yaml}")
        return yaml.safe_load(manifest_yaml)

    def _ensure_claim(self, volume: VolumeSpec, namespace: str) -> None:
        """Create a cache claim on first use; later executions reuse it."""
        try:
            self.core_v1.read_namespaced_persistent_volume_claim(
                name=volume.claim_name, namespace=namespace
            )
            return
        except ApiException as e:
            if e.status != 404:
                raise SubmissionError(
                    f"Failed to look up claim {volume.claim_name}: {e}"
                ) from e

        spec = {
            "accessModes": ["ReadWriteMany"],
            "resources": {"requests": {"storage": volume.claim_size}},
        }
        if volume.storage_class:
            spec["storageClassName"] = volume.storage_class
        body = {
            "apiVersion": "v1",
            "kind": "PersistentVolumeClaim",
            "metadata": {"name": volume.claim_name, "namespace": namespace},
            "spec": spec,
        }

        try:
            self.core_v1.create_namespaced_persistent_volume_claim(
                namespace=namespace, body=body
            )
            logger.info(f"Created cache claim {volume.claim_name} ({volume.claim_size})")
        except ApiException as e:
            # Another execution of the same job may have created it concurrently
            if e.status != 409:
                raise SubmissionError(
                    f"Failed to create claim {volume.claim_name}: {e}"
                ) from e

    def launch(self, request: ExecutionRequest) -> Dict[str, Any]:
        """Create the pod for a request."""
        namespace = request.namespace or self.namespace

        for volume in request.volumes:
            if volume.claim_name and volume.claim_size:
                self._ensure_claim(volume, namespace)

        manifest = self.render_manifest(request)

        try:
            self.core_v1.create_namespaced_pod(namespace=namespace, body=manifest)
        except ApiException as e:
            raise SubmissionError(
                f"Failed to create pod {request.pod_name}: {e.status} {e.reason}"
            ) from e

        logger.info(f"Created pod {request.pod_name} in namespace {namespace}")
        return {"mode": "k8s", "pod_name": request.pod_name, "namespace": namespace}

    def check_status(self, execution_info: Dict[str, Any]) -> Dict[str, Any]:
        """Map the pod phase onto an execution status."""
        pod_name = execution_info["pod_name"]
        namespace = execution_info.get("namespace", self.namespace)

        try:
            pod = self.core_v1.read_namespaced_pod(name=pod_name, namespace=namespace)
        except ApiException as e:
            if e.status == 404:
                return {"status": STATUS_FAILED, "error": "Pod not found"}
            raise BackendError(f"Failed to check pod status: {e}") from e

        phase = pod.status.phase
        state = self._container_state(pod)

        if phase == "Succeeded":
            return {"status": STATUS_COMPLETED, "exit_code": 0}

        if phase == "Failed":
            exit_code = 1
            if state is not None and state.terminated is not None:
                exit_code = state.terminated.exit_code
            error = pod.status.message or pod.status.reason or "Pod failed"
            return {"status": STATUS_FAILED, "exit_code": exit_code, "error": error}

        if phase == "Pending":
            if state is not None and state.waiting is not None:
                reason = state.waiting.reason
                if reason in FATAL_WAITING_REASONS:
                    return {
                        "status": STATUS_FAILED,
                        "error": f"{reason}: {state.waiting.message or ''}".strip(),
                    }
            return {"status": STATUS_PENDING}

        return {"status": STATUS_RUNNING}

    @staticmethod
    def _container_state(pod):
        for status in pod.status.container_statuses or []:
            if status.name == CONTAINER_NAME:
                return status.state
        return None

    def get_logs(self, execution_info: Dict[str, Any]) -> str:
        """Read pod logs so far."""
        pod_name = execution_info["pod_name"]
        namespace = execution_info.get("namespace", self.namespace)

        try:
            return self.core_v1.read_namespaced_pod_log(
                name=pod_name, namespace=namespace, container=CONTAINER_NAME
            )
        except ApiException as e:
            # 404 before the pod exists, 400 while the container is still creating
            if e.status in (400, 404):
                return ""
            raise BackendError(f"Failed to read logs for pod {pod_name}: {e}") from e

    def terminate(self, execution_info: Dict[str, Any]) -> None:
        """Delete the pod, stopping it if still running."""
        pod_name = execution_info["pod_name"]
        namespace = execution_info.get("namespace", self.namespace)

        try:
            self.core_v1.delete_namespaced_pod(
                name=pod_name,
                namespace=namespace,
                propagation_policy="Background",
            )
            logger.info(f"Deleted pod {pod_name} in namespace {namespace}")
        except ApiException as e:
            if e.status == 404:
                logger.info(f"Pod {pod_name} already deleted or not found")
            else:
                logger.error(f"Failed to delete pod {pod_name}: {e}")
                raise BackendError(f"Failed to delete pod {pod_name}: {e}") from e
