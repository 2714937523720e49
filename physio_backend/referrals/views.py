from rest_framework import generics

from physio_backend.core.utils import log_action

from .models import ReferralCase, ReferralStatusHistory
from .permissions import ReferralPermission
from .serializers import ReferralCaseSerializer, ReferralStatusHistorySerializer


class ReferralCaseDetailView(generics.RetrieveAPIView):
	permission_classes = [ReferralPermission]
	serializer_class = ReferralCaseSerializer
	queryset = ReferralCase.objects.select_related('patient', 'source_clinic', 'target_clinic')

	def retrieve(self, request, *args, **kwargs):
		response = super().retrieve(request, *args, **kwargs)
		log_action(request.user, 'referral_view', 'referral', int(kwargs['pk']))
		return response


class ReferralStatusHistoryView(generics.ListAPIView):
	"""Status timeline of one PN case, oldest first."""
	permission_classes = [ReferralPermission]
	serializer_class = ReferralStatusHistorySerializer
	pagination_class = None

	def get_queryset(self):
		referral = generics.get_object_or_404(ReferralCase, pk=self.kwargs['pk'])
		return ReferralStatusHistory.objects.filter(referral=referral).select_related('changed_by')
